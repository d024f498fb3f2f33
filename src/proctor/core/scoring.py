"""
Scoring engine: (quiz definition, captured answers) -> score breakdown.

Pure functions, no I/O. Shared by the client session and the backend so the
stored score is always computed by the same rules.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping

from proctor.core.types import QuestionResult, QuizDefinition, ScoreBreakdown

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(score: int, total_points: int) -> int:
    """round(score / total * 100) with half-up rounding; 0 when there is nothing to score."""
    if total_points <= 0:
        return 0
    pct = round_half_up(Decimal(score) * 100 / Decimal(total_points))
    return max(0, min(100, pct))


def normalize_answers(answers: Mapping[Any, Any], question_count: int) -> Dict[int, str]:
    """
    Coerce an answer map to {question_index: option_text}.

    Keys may arrive as ints or digit strings (JSON). Entries with an unusable
    key or a non-string value are dropped, which scores them as unanswered.
    """
    normalized: Dict[int, str] = {}
    for raw_key, value in (answers or {}).items():
        try:
            index = int(raw_key)
        except (TypeError, ValueError):
            logger.debug("dropping answer with invalid key=%r", raw_key)
            continue
        if not 0 <= index < question_count:
            logger.debug("dropping answer for out of range index=%s", index)
            continue
        if not isinstance(value, str):
            logger.debug("dropping non-text answer index=%s type=%s", index, type(value).__name__)
            continue
        normalized[index] = value
    return normalized


def score_attempt(quiz: QuizDefinition, answers: Mapping[Any, Any]) -> ScoreBreakdown:
    """
    Exact, case-sensitive match of each answer against the option flagged
    correct. Unanswered questions earn nothing.
    """
    captured = normalize_answers(answers, len(quiz.questions))

    score = 0
    total_points = 0
    correct_answers = 0
    results = []
    for index, question in enumerate(quiz.questions):
        total_points += question.points
        submitted = captured.get(index)
        expected = question.correct_option.text
        is_correct = submitted is not None and submitted == expected
        if is_correct:
            score += question.points
            correct_answers += 1
        results.append(
            QuestionResult(
                question_id=question.id,
                question=question.text,
                submitted_answer=submitted,
                correct_answer=expected,
                is_correct=is_correct,
                points=question.points,
            )
        )

    pct = percentage(score, total_points)
    return ScoreBreakdown(
        quiz_id=quiz.id,
        score=score,
        total_points=total_points,
        percentage_score=pct,
        passed=pct >= quiz.passing_score_percent,
        passing_score_percent=quiz.passing_score_percent,
        certificate_eligible=quiz.certificate_eligible,
        correct_answers=correct_answers,
        total_questions=len(quiz.questions),
        question_results=results,
    )
