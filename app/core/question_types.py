"""Question type payload rules.

Single source of truth for what the ``options`` column holds per question
type. Used when questions are written (normalisation) and when responses are
validated against the effective options of a link.

    multiple_choice -> [{"label": str, "value": str, "points": number?}, ...]  (>= 2, unique values)
    yes_no          -> same shape, defaults to yes/no
    rating          -> {"min": int, "max": int, "minLabel": str?, "maxLabel": str?}
    text            -> None
"""
from typing import Any, Dict, List, Optional, Tuple

from app.models.question import QuestionType

DEFAULT_YES_NO_OPTIONS: List[Dict[str, Any]] = [
    {"label": "Yes", "value": "yes"},
    {"label": "No", "value": "no"},
]
DEFAULT_RATING_SCALE: Dict[str, Any] = {"min": 1, "max": 5, "minLabel": "Not at all", "maxLabel": "Extremely"}

CHOICE_TYPES = {QuestionType.multiple_choice.value, QuestionType.yes_no.value}
# applied to text answers when validation_rules sets no max_length
DEFAULT_TEXT_MAX_LENGTH = 5000


def coerce_type(question_type) -> str:
    """Accept a QuestionType or its string value; raise ValueError for anything else."""
    value = question_type.value if isinstance(question_type, QuestionType) else str(question_type)
    try:
        return QuestionType(value).value
    except ValueError:
        allowed = ", ".join(t.value for t in QuestionType)
        raise ValueError(f"Unknown question type '{value}' (expected one of: {allowed})")


def _normalize_choice_list(options: Any, minimum: int) -> List[Dict[str, Any]]:
    if not isinstance(options, list):
        raise ValueError("options must be a list of {label, value} objects")
    cleaned: List[Dict[str, Any]] = []
    seen = set()
    for idx, opt in enumerate(options, start=1):
        if isinstance(opt, str):
            opt = {"label": opt, "value": opt}
        if not isinstance(opt, dict):
            raise ValueError(f"option {idx} must be an object")
        label = str(opt.get("label") or "").strip()
        value = opt.get("value")
        value = str(value).strip() if value is not None else ""
        # Blank rows are dropped the same way the authoring form drops them
        if not label and not value:
            continue
        if not value:
            raise ValueError(f"option {idx} is missing a value")
        if value in seen:
            raise ValueError(f"duplicate option value '{value}'")
        seen.add(value)
        item: Dict[str, Any] = {"label": label or value, "value": value}
        if opt.get("points") is not None:
            try:
                item["points"] = float(opt["points"])
            except (TypeError, ValueError):
                raise ValueError(f"option {idx} has non-numeric points")
        cleaned.append(item)
    if len(cleaned) < minimum:
        raise ValueError(f"At least {minimum} options are required")
    return cleaned


def _normalize_rating(options: Any) -> Dict[str, Any]:
    if options is None:
        return dict(DEFAULT_RATING_SCALE)
    if not isinstance(options, dict):
        raise ValueError("rating options must be an object with min and max")
    try:
        lo = int(options.get("min", DEFAULT_RATING_SCALE["min"]))
        hi = int(options.get("max", DEFAULT_RATING_SCALE["max"]))
    except (TypeError, ValueError):
        raise ValueError("rating min and max must be integers")
    if lo >= hi:
        raise ValueError("rating min must be lower than max")
    scale: Dict[str, Any] = {"min": lo, "max": hi}
    for label_key in ("minLabel", "maxLabel"):
        if options.get(label_key):
            scale[label_key] = str(options[label_key])
    return scale


def normalize_options(question_type, options: Any) -> Optional[Any]:
    """Validate and normalise an options payload for the given type.

    Raises ValueError with a user-facing message on a malformed payload.
    """
    qtype = coerce_type(question_type)
    if qtype == QuestionType.multiple_choice.value:
        return _normalize_choice_list(options, minimum=2)
    if qtype == QuestionType.yes_no.value:
        if options is None:
            return [dict(o) for o in DEFAULT_YES_NO_OPTIONS]
        return _normalize_choice_list(options, minimum=2)
    if qtype == QuestionType.rating.value:
        return _normalize_rating(options)
    # free text carries no options
    return None


def choice_options(question_type: str, options: Any) -> List[Dict[str, Any]]:
    """Effective option list for a choice question, falling back to defaults."""
    if isinstance(options, list) and options:
        return [o if isinstance(o, dict) else {"label": str(o), "value": str(o)} for o in options]
    if question_type == QuestionType.yes_no.value:
        return [dict(o) for o in DEFAULT_YES_NO_OPTIONS]
    return []


def rating_bounds(options: Any) -> Tuple[int, int]:
    scale = options if isinstance(options, dict) else DEFAULT_RATING_SCALE
    return int(scale.get("min", DEFAULT_RATING_SCALE["min"])), int(scale.get("max", DEFAULT_RATING_SCALE["max"]))
