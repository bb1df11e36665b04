from eduassist.schemas.study import Difficulty, QuizQuestion, QuizResult, SummaryResult, ErrorResponse

__all__ = [
    "Difficulty", "QuizQuestion", "QuizResult", "SummaryResult", "ErrorResponse",
]
