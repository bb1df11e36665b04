from functools import lru_cache

from eduassist.core.config import settings
from eduassist.services.ai_service import AIService


@lru_cache
def get_ai_service() -> AIService:
    """
    Shared AIService for the process.

    Raises MissingCredentialError when ANTHROPIC_API_KEY is unset; failed
    constructions are not cached, so setting the key later takes effect.
    """
    return AIService(
        api_key=settings.anthropic_api_key,
        model=settings.claude_model,
        max_tokens=settings.ai_max_tokens,
        temperature=settings.ai_temperature,
        quiz_temperature=settings.ai_quiz_temperature,
        timeout=settings.ai_timeout_seconds,
    )
