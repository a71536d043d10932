"""Conditional display rules attached to assessment question links.

A rule hides its question unless the referenced question's submitted answer
satisfies it:

    {"assessment_question_id": "<link id>", "operator": "equals", "value": "yes"}

Operators: equals, not_equals, in, not_in, answered. Rules are evaluated
against the raw submitted answers only; they do not chain through the
visibility of the referenced question.
"""
from typing import Any, Dict, Iterable, Optional

OPERATORS = {"equals", "not_equals", "in", "not_in", "answered"}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def validate_rule(rule: Optional[Dict[str, Any]], own_link_id: Optional[str], sibling_link_ids: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Return a cleaned rule or raise ValueError."""
    if not rule:
        return None
    if not isinstance(rule, dict):
        raise ValueError("conditional_logic must be an object")
    target = rule.get("assessment_question_id")
    operator = rule.get("operator", "equals")
    if not target:
        raise ValueError("conditional_logic.assessment_question_id is required")
    if own_link_id is not None and target == own_link_id:
        raise ValueError("a question cannot depend on itself")
    if target not in set(sibling_link_ids):
        raise ValueError("conditional_logic must reference a question in the same assessment")
    if operator not in OPERATORS:
        raise ValueError(f"unknown conditional operator '{operator}'")
    if operator in ("in", "not_in") and not isinstance(rule.get("value"), list):
        raise ValueError(f"operator '{operator}' needs a list value")
    cleaned = {"assessment_question_id": target, "operator": operator}
    if operator != "answered":
        cleaned["value"] = rule.get("value")
    return cleaned


def _matches(answer: Any, expected: Any) -> bool:
    if isinstance(answer, list):
        return expected in answer
    if isinstance(answer, (int, float)) and not isinstance(answer, bool):
        try:
            return float(answer) == float(expected)
        except (TypeError, ValueError):
            return False
    return str(answer) == str(expected)


def is_visible(rule: Optional[Dict[str, Any]], answers: Dict[str, Any]) -> bool:
    """True when the question should be shown (and therefore validated)."""
    if not rule:
        return True
    answer = answers.get(rule.get("assessment_question_id"))
    operator = rule.get("operator", "equals")
    if operator == "answered":
        return not is_blank(answer)
    if is_blank(answer):
        # nothing to compare against; only a negative rule can pass
        return operator in ("not_equals", "not_in")
    expected = rule.get("value")
    if operator == "equals":
        return _matches(answer, expected)
    if operator == "not_equals":
        return not _matches(answer, expected)
    options = expected if isinstance(expected, list) else [expected]
    hit = any(_matches(answer, option) for option in options)
    return hit if operator == "in" else not hit
