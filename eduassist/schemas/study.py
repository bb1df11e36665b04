from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class QuizQuestion(BaseModel):
    """A well-formed multiple-choice question: text, four options, an answer."""
    question: NonBlankStr
    options: list[NonBlankStr] = Field(min_length=4, max_length=4)
    answer: NonBlankStr


class QuizResult(BaseModel):
    """Validated quiz returned by /quiz."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    questions: list[QuizQuestion]
    difficulty: Difficulty
    question_count: int = Field(alias="questionCount")


class SummaryResult(BaseModel):
    """Summary returned by /summary."""
    result: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    error: str
    code: str | None = None


class UploadFormatsResponse(BaseModel):
    extensions: list[str]
    max_file_size_bytes: int
    max_file_size_mb: int
