"""
Turns raw model output into a quiz the caller can always use.

Two paths: a strict JSON parse with per-question repair, or, when the output
cannot be parsed at all, a deterministic fallback quiz.
"""
import json
import re

from pydantic import ValidationError

from eduassist.core.logging_config import get_logger
from eduassist.schemas.study import Difficulty, QuizQuestion, QuizResult

logger = get_logger(__name__)

PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def parse_questions(raw_text: str) -> list | None:
    """
    Strictly parse raw_text into the model's question list.

    Accepts ``{"questions": [...]}`` or a bare list. Returns None when the
    text is not JSON or has no question list.
    """
    try:
        payload = json.loads(strip_json_fences(raw_text))
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning(f"Quiz response is not valid JSON: {e}")
        logger.debug(f"Raw response: {raw_text[:500]}")
        return None

    if isinstance(payload, dict):
        payload = payload.get("questions")
    if not isinstance(payload, list):
        logger.warning("Quiz response has no question list")
        return None
    return payload


def placeholder_question(number: int) -> QuizQuestion:
    """Stand-in for the number-th (1-based) question when the model's is unusable."""
    return QuizQuestion(
        question=f"Question {number} about the provided content",
        options=list(PLACEHOLDER_OPTIONS),
        answer=PLACEHOLDER_OPTIONS[0],
    )


def repair_questions(items: list) -> list[QuizQuestion]:
    """Validate each question on its own, replacing malformed ones in place."""
    questions = []
    for number, item in enumerate(items, 1):
        try:
            question = QuizQuestion.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Replacing malformed question {number}: {e.error_count()} problem(s)")
            questions.append(placeholder_question(number))
            continue
        # Answers outside the options pass through untouched
        if question.answer not in question.options:
            logger.warning(f"Question {number} answer does not match any option")
        questions.append(question)
    return questions


def build_fallback_quiz(difficulty: Difficulty, question_count: int) -> list[QuizQuestion]:
    """
    Fixed bank of generic study-skill questions.

    The second question's answer is the requested difficulty and the third's is
    the requested question count, so a caller can tell the fallback was used.
    The result depends only on the arguments.
    """
    difficulty = Difficulty(difficulty)
    count_options = [str(n) for n in range(question_count - 1, question_count + 3)]
    bank = [
        QuizQuestion(
            question="Based on the provided content, what is the main topic being discussed?",
            options=["Primary concept", "Secondary details", "Background information", "Conclusion"],
            answer="Primary concept",
        ),
        QuizQuestion(
            question="What difficulty level is this quiz set to?",
            options=["Easy", "Medium", "Hard", "Expert"],
            answer=difficulty.value.capitalize(),
        ),
        QuizQuestion(
            question="How many questions are in this quiz?",
            options=count_options,
            answer=str(question_count),
        ),
        QuizQuestion(
            question="Which approach is best for studying this material?",
            options=["Memorization only", "Understanding concepts", "Skipping details", "Reading once"],
            answer="Understanding concepts",
        ),
        QuizQuestion(
            question="What is the most important aspect when learning new material?",
            options=["Speed", "Comprehension", "Repetition", "Note-taking"],
            answer="Comprehension",
        ),
        QuizQuestion(
            question="What should you do after reading a section of new material?",
            options=["Move on immediately", "Summarize it in your own words", "Reread it word for word", "Highlight everything"],
            answer="Summarize it in your own words",
        ),
        QuizQuestion(
            question="Which study schedule usually leads to better long-term recall?",
            options=["One long session", "Spaced sessions over several days", "Studying only the night before", "Studying while multitasking"],
            answer="Spaced sessions over several days",
        ),
        QuizQuestion(
            question="What is the main benefit of testing yourself on material?",
            options=["It strengthens recall", "It replaces reading", "It saves no time", "It only measures speed"],
            answer="It strengthens recall",
        ),
        QuizQuestion(
            question="When you meet an unfamiliar term in the material, what is the best first step?",
            options=["Ignore it", "Look up its meaning", "Memorize its spelling", "Skip the paragraph"],
            answer="Look up its meaning",
        ),
        QuizQuestion(
            question="How can you check that you really understand a concept?",
            options=["Explain it to someone else", "Read it faster", "Copy it out", "Count the pages"],
            answer="Explain it to someone else",
        ),
    ]

    questions = bank[:question_count]
    while len(questions) < question_count:
        questions.append(placeholder_question(len(questions) + 1))
    return questions


def interpret_quiz(raw_text: str, difficulty: Difficulty, question_count: int) -> QuizResult:
    """
    Turn raw completion text into a structurally valid quiz. Never raises on bad model output.

    Args:
        raw_text: Completion text from the model
        difficulty: Requested difficulty, echoed in the result
        question_count: Requested number of questions

    Returns:
        QuizResult with at most question_count questions, each with four options
    """
    difficulty = Difficulty(difficulty)
    items = parse_questions(raw_text)

    if not items:
        logger.info(f"Using fallback quiz | difficulty={difficulty.value} | question_count={question_count}")
        questions = build_fallback_quiz(difficulty, question_count)
    else:
        questions = repair_questions(items[:question_count])

    return QuizResult(
        questions=questions,
        difficulty=difficulty,
        question_count=len(questions),
    )
