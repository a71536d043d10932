from __future__ import annotations
from typing import Dict, Any, List
import logging

from app.core.question_types import CHOICE_TYPES, choice_options
from app.models.question import QuestionType

logger = logging.getLogger("app.scoring")


def _coerce_float(v: Any, default: float | None = 0.0) -> float | None:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def points_for(question_type: str, options: Any, value: Any) -> float:
    """Points earned by one answer.

    - choice types: sum of the ``points`` of the chosen options (missing points count 0)
    - rating: the numeric value itself
    - text: 0
    """
    if value is None:
        return 0.0
    if question_type in CHOICE_TYPES:
        by_value = {str(o.get("value")): _coerce_float(o.get("points"), 0.0) for o in choice_options(question_type, options)}
        chosen = value if isinstance(value, list) else [value]
        return float(sum(by_value.get(str(v), 0.0) for v in chosen))
    if question_type == QuestionType.rating.value:
        return _coerce_float(value, 0.0)
    return 0.0


def raw_score(points: List[float]) -> float:
    """Plain sum of per-response points; interpretation is left to the therapist."""
    total = round(float(sum(p for p in points if p is not None)), 2)
    logger.debug("Raw score computed: total=%s responses=%d", total, len(points))
    return total


def score_answers(questions: Dict[str, Any], answers: Dict[str, Any]) -> Dict[str, Any]:
    """Score validated answers keyed by assessment_question_id.

    ``questions`` maps the same ids to effective questions. Output:
        {"points": {id: float}, "raw_score": float}
    """
    per_question = {
        qid: points_for(questions[qid].question_type, questions[qid].options, value)
        for qid, value in answers.items()
    }
    return {"points": per_question, "raw_score": raw_score(list(per_question.values()))}
