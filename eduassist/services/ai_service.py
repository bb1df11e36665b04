"""
AI Service for generating summaries and quizzes using Anthropic Claude.
"""
import time
from dataclasses import dataclass
from enum import Enum

import anthropic

from eduassist.core.logging_config import get_logger
from eduassist.schemas.study import Difficulty, QuizResult
from eduassist.services.quiz_interpreter import interpret_quiz

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# Statuses the provider uses to say "come back later"
RATE_LIMIT_STATUSES = {429, 529}


class AIServiceError(Exception):
    """Base exception for failures talking to the completion API."""


class MissingCredentialError(AIServiceError):
    """No API key was supplied when the service was built."""


class UpstreamError(AIServiceError):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, status_text: str = ""):
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"AI API error: {status_code} {status_text}".rstrip())

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code in RATE_LIMIT_STATUSES


class TransportError(AIServiceError):
    """The request never got an HTTP answer (network failure, timeout)."""


class EmptyCompletionError(AIServiceError):
    """The API answered 2xx without any completion text."""


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass(frozen=True)
class AIMessage:
    role: MessageRole
    text: str


SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful educational assistant. Provide clear, concise summaries that are "
    "easy to understand. Focus on the main concepts, key points, and important details. "
    "Structure your response with clear paragraphs and make it engaging for learners."
)

QUIZ_SYSTEM_PROMPT = """You are a quiz generator. Generate exactly {count} multiple choice questions based on the provided content. Each question should have 4 options and be at {difficulty} difficulty level.

Return the response in valid JSON format with this exact structure:
{{
  "questions": [
    {{
      "question": "Question text here",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "answer": "Option A"
    }}
  ]
}}

Make sure:
- Questions test understanding, not just memorization
- All 4 options are plausible
- The answer is copied exactly from one of the options
- Questions cover different aspects of the content
- Difficulty matches the requested level

Return ONLY the JSON object, no other text."""


def split_messages(messages: list[AIMessage]) -> tuple[str, list[dict]]:
    """
    Turn an ordered message list into the provider's (system, messages) pair.

    System messages must all come before the first user message.
    """
    system_parts: list[str] = []
    chat: list[dict] = []
    for message in messages:
        if message.role == MessageRole.SYSTEM:
            if chat:
                raise ValueError("System messages must precede user messages")
            system_parts.append(message.text)
        else:
            chat.append({"role": "user", "content": message.text})

    if not chat:
        raise ValueError("At least one user message is required")
    return "\n\n".join(system_parts), chat


class AIService:
    """
    Thin wrapper around the Anthropic Messages API.

    The credential is checked once, when the service is built, so a missing
    key fails construction instead of the first request.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        quiz_temperature: float = 0.5,
        timeout: float = 30.0,
        client=None,
    ):
        if not api_key:
            logger.error("Anthropic API key not configured")
            raise MissingCredentialError("ANTHROPIC_API_KEY not configured")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.quiz_temperature = quiz_temperature
        # No retries anywhere in this service; the SDK would otherwise retry twice
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout, max_retries=0,
        )

    async def complete(
        self,
        messages: list[AIMessage],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """
        Send one completion request and return the completion text.

        Raises:
            UpstreamError: non-2xx response
            TransportError: connection failure or timeout
            EmptyCompletionError: 2xx response without text
        """
        model = model or self.model
        max_tokens = max_tokens or self.max_tokens
        temperature = self.temperature if temperature is None else temperature
        system_prompt, chat = split_messages(messages)

        start_time = time.time()
        logger.info(f"Starting AI completion | model={model} | max_tokens={max_tokens}")
        logger.debug(f"Prompt length: {sum(len(m['content']) for m in chat)} chars")

        request = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": chat,
            "temperature": temperature,
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            message = await self.client.messages.create(**request)
        except anthropic.APIStatusError as e:
            duration_ms = (time.time() - start_time) * 1000
            status_text = e.response.reason_phrase if e.response is not None else ""
            logger.error(
                f"AI completion failed | duration={duration_ms:.2f}ms | "
                f"status={e.status_code} {status_text}"
            )
            raise UpstreamError(e.status_code, status_text) from e
        except anthropic.APIConnectionError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"AI transport failure | duration={duration_ms:.2f}ms | error={str(e)}")
            raise TransportError(f"Could not reach the AI service: {str(e)}") from e

        duration_ms = (time.time() - start_time) * 1000
        text = "".join(
            block.text for block in (message.content or []) if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            logger.error(f"AI completion was empty | duration={duration_ms:.2f}ms")
            raise EmptyCompletionError("The AI service returned an empty completion")

        usage = getattr(message, "usage", None)
        if usage is not None:
            logger.info(
                f"AI completion finished | duration={duration_ms:.2f}ms | "
                f"input_tokens={usage.input_tokens} | output_tokens={usage.output_tokens}"
            )
        return text

    async def generate_summary(self, content: str) -> str:
        """Generate a plain-language summary of content."""
        logger.info(f"Generating summary | content_length={len(content)}")
        messages = [
            AIMessage(MessageRole.SYSTEM, SUMMARY_SYSTEM_PROMPT),
            AIMessage(
                MessageRole.USER,
                "Please provide a comprehensive summary of the following content in simple terms. "
                "Break it down into main concepts and explain them clearly:\n\n" + content,
            ),
        ]
        return await self.complete(messages)

    async def generate_quiz(
        self,
        content: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        question_count: int = 5,
    ) -> QuizResult:
        """
        Generate a multiple-choice quiz about content.

        Malformed model output never raises here; the interpreter repairs it
        or substitutes the fallback quiz.
        """
        difficulty = Difficulty(difficulty)
        logger.info(f"Generating quiz | difficulty={difficulty.value} | question_count={question_count}")
        messages = [
            AIMessage(
                MessageRole.SYSTEM,
                QUIZ_SYSTEM_PROMPT.format(count=question_count, difficulty=difficulty.value),
            ),
            AIMessage(
                MessageRole.USER,
                f"Generate a {difficulty.value} level quiz with {question_count} multiple choice "
                f"questions based on this content:\n\n{content}",
            ),
        ]
        raw = await self.complete(messages, temperature=self.quiz_temperature)
        return interpret_quiz(raw, difficulty, question_count)
