from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, HTTPException, UploadFile, File, Form, status

from eduassist.api.deps import get_ai_service
from eduassist.core.config import settings
from eduassist.core.logging_config import get_logger
from eduassist.schemas.study import (
    Difficulty,
    ErrorResponse,
    QuizResult,
    SummaryResult,
    UploadFormatsResponse,
)
from eduassist.services.ai_service import (
    AIServiceError,
    MissingCredentialError,
    UpstreamError,
)
from eduassist.services.file_processor import (
    FileProcessingError,
    extract_text,
    get_supported_formats,
    measure_upload,
    stored_upload,
    validate_upload,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Study Tools"])

# A typed topic needs 10 characters on both endpoints, so a one-word topic like
# "Photosynthesis" can be quizzed. The 20-character quiz floor applies only to
# text extracted from an uploaded document.
MIN_TOPIC_LENGTH = 10
MIN_SUMMARY_DOCUMENT_LENGTH = 10
MIN_QUIZ_DOCUMENT_LENGTH = 20

DEFAULT_QUESTION_COUNT = 5
MIN_QUESTION_COUNT = 3
MAX_QUESTION_COUNT = 10

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# ============================================
# Helper Functions
# ============================================


def api_error(status_code: int, code: str, message: str) -> HTTPException:
    """HTTPException rendered as {"error": message, "code": code}."""
    return HTTPException(status_code=status_code, detail={"error": message, "code": code})


def normalize_difficulty(value: str | None) -> Difficulty:
    """Recognized levels are matched case-insensitively; anything else is medium."""
    try:
        return Difficulty((value or "").strip().lower())
    except ValueError:
        return Difficulty.MEDIUM


def normalize_question_count(value: str | None) -> int:
    """Integers are clamped to [3, 10]; missing or non-integer values become 5."""
    try:
        count = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_QUESTION_COUNT
    return max(MIN_QUESTION_COUNT, min(MAX_QUESTION_COUNT, count))


def ensure_usable_content(content: str, min_length: int) -> str:
    if not content.strip():
        raise api_error(status.HTTP_400_BAD_REQUEST, "EmptyContent", "The provided content is empty")
    if len(content.strip()) < min_length:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "ContentTooShort",
            f"Please provide at least {min_length} characters of content",
        )
    return content


def declared_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    return measure_upload(file.file)


@contextmanager
def resolved_content(
    topic: str | None, file: UploadFile | None, min_document_length: int
) -> Iterator[str]:
    """
    Resolve the request's content, uploaded file first, typed topic second.

    An upload is validated before it is written anywhere, and the stored copy
    lives until the block exits, whatever the outcome.
    """
    if file is not None and file.filename:
        try:
            validate_upload(file.filename, declared_size(file), settings.max_upload_bytes)
        except FileProcessingError as e:
            raise api_error(status.HTTP_400_BAD_REQUEST, e.code, str(e))

        with stored_upload(file.file, file.filename, settings.upload_dir) as path:
            try:
                text = extract_text(path, file.filename)
            except FileProcessingError as e:
                raise api_error(status.HTTP_400_BAD_REQUEST, e.code, str(e))
            yield ensure_usable_content(text, min_document_length)

    elif topic:
        yield ensure_usable_content(topic, MIN_TOPIC_LENGTH)

    else:
        raise api_error(
            status.HTTP_400_BAD_REQUEST, "MissingInput", "Please provide a topic or upload a file"
        )


def ai_error_to_http(e: AIServiceError, action: str) -> HTTPException:
    """Map an AI client failure onto the status the caller sees."""
    if isinstance(e, MissingCredentialError):
        return api_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "ConfigurationError",
            "The AI service is not configured. Please contact the administrator.",
        )
    if isinstance(e, UpstreamError) and e.is_rate_limited:
        return api_error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RateLimited",
            "The AI service is busy right now. Please try again later.",
        )
    return api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "AIServiceError", f"Failed to generate {action}")


# ============================================
# Generation Endpoints
# ============================================


@router.post("/summary", response_model=SummaryResult, responses=ERROR_RESPONSES)
async def generate_summary_endpoint(
    topic: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """Summarize a typed topic or an uploaded .txt/.md/.pdf file in plain language."""
    with resolved_content(topic, file, MIN_SUMMARY_DOCUMENT_LENGTH) as content:
        try:
            summary = await get_ai_service().generate_summary(content)
        except AIServiceError as e:
            logger.error(f"Summary generation failed: {e}")
            raise ai_error_to_http(e, "summary")

    return SummaryResult(result=summary)


@router.post(
    "/quiz",
    response_model=QuizResult,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def generate_quiz_endpoint(
    topic: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    difficulty: Optional[str] = Form(None),
    question_count: Optional[str] = Form(None, alias="questionCount"),
):
    """
    Generate a multiple-choice quiz from a typed topic or an uploaded file.

    Difficulty is easy, medium or hard (default medium); questionCount is
    3 to 10 (default 5).
    """
    level = normalize_difficulty(difficulty)
    count = normalize_question_count(question_count)

    with resolved_content(topic, file, MIN_QUIZ_DOCUMENT_LENGTH) as content:
        try:
            quiz = await get_ai_service().generate_quiz(content, level, count)
        except AIServiceError as e:
            logger.error(f"Quiz generation failed: {e}")
            raise ai_error_to_http(e, "quiz")

    return quiz


@router.get("/upload/formats", response_model=UploadFormatsResponse)
def get_upload_formats():
    """Get information about supported file upload formats."""
    return get_supported_formats(settings.max_upload_bytes)
