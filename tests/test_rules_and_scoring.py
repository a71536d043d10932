import pytest

from app.core.conditional_logic import is_visible, validate_rule
from app.core.question_types import choice_options, normalize_options, rating_bounds
from app.services.scoring import points_for, raw_score


class TestOptionNormalisation:
    def test_string_options_become_label_value_pairs(self):
        assert normalize_options("multiple_choice", ["Low", "High"]) == [
            {"label": "Low", "value": "Low"},
            {"label": "High", "value": "High"},
        ]

    def test_duplicate_values_are_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            normalize_options("multiple_choice", [{"label": "A", "value": "a"}, {"label": "B", "value": "a"}])

    def test_non_numeric_points_are_rejected(self):
        with pytest.raises(ValueError, match="points"):
            normalize_options("multiple_choice", [{"label": "A", "value": "a", "points": "lots"}, "b"])

    @pytest.mark.parametrize("options", [{"min": 5, "max": 5}, {"min": "x", "max": 3}, [1, 5]])
    def test_bad_rating_scales(self, options):
        with pytest.raises(ValueError):
            normalize_options("rating", options)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown question type"):
            normalize_options("essay", None)

    def test_effective_option_fallbacks(self):
        assert [o["value"] for o in choice_options("yes_no", None)] == ["yes", "no"]
        assert choice_options("multiple_choice", None) == []
        assert rating_bounds(None) == (1, 5)
        assert rating_bounds({"min": 0, "max": 10}) == (0, 10)


class TestDisplayRules:
    SIBLINGS = ["link-a", "link-b"]

    def test_valid_rule_is_cleaned(self):
        rule = validate_rule({"assessment_question_id": "link-a", "operator": "answered", "value": "x"}, "link-b", self.SIBLINGS)
        assert rule == {"assessment_question_id": "link-a", "operator": "answered"}

    def test_operator_defaults_to_equals(self):
        rule = validate_rule({"assessment_question_id": "link-a", "value": "yes"}, "link-b", self.SIBLINGS)
        assert rule["operator"] == "equals"

    @pytest.mark.parametrize(
        "rule, message",
        [
            ({"operator": "equals", "value": "yes"}, "required"),
            ({"assessment_question_id": "link-b", "value": "yes"}, "itself"),
            ({"assessment_question_id": "link-z", "value": "yes"}, "same assessment"),
            ({"assessment_question_id": "link-a", "operator": "gt", "value": 1}, "unknown"),
            ({"assessment_question_id": "link-a", "operator": "in", "value": "yes"}, "list"),
        ],
    )
    def test_invalid_rules(self, rule, message):
        with pytest.raises(ValueError, match=message):
            validate_rule(rule, "link-b", self.SIBLINGS)

    def test_empty_rule_means_always_visible(self):
        assert validate_rule(None, "link-b", self.SIBLINGS) is None
        assert is_visible(None, {})

    def test_equals_and_not_equals(self):
        rule = {"assessment_question_id": "link-a", "operator": "equals", "value": "yes"}
        assert is_visible(rule, {"link-a": "yes"})
        assert not is_visible(rule, {"link-a": "no"})
        assert not is_visible(rule, {})
        negated = {**rule, "operator": "not_equals"}
        assert is_visible(negated, {"link-a": "no"})
        assert is_visible(negated, {})

    def test_numeric_and_list_answers(self):
        rule = {"assessment_question_id": "link-a", "operator": "in", "value": [4, 5]}
        assert is_visible(rule, {"link-a": 5.0})
        assert not is_visible(rule, {"link-a": 3})
        picked = {"assessment_question_id": "link-a", "operator": "equals", "value": "b"}
        assert is_visible(picked, {"link-a": ["a", "b"]})

    def test_answered(self):
        rule = {"assessment_question_id": "link-a", "operator": "answered"}
        assert is_visible(rule, {"link-a": "something"})
        assert not is_visible(rule, {"link-a": "   "})
        assert not is_visible(rule, {"link-a": []})


class TestScoring:
    OPTIONS = [{"label": "A", "value": "a", "points": 1}, {"label": "B", "value": "b", "points": 2.5}, {"label": "C", "value": "c"}]

    def test_choice_points(self):
        assert points_for("multiple_choice", self.OPTIONS, "b") == 2.5
        assert points_for("multiple_choice", self.OPTIONS, ["a", "b"]) == 3.5
        assert points_for("multiple_choice", self.OPTIONS, "c") == 0.0

    def test_rating_and_text(self):
        assert points_for("rating", {"min": 1, "max": 10}, 7.0) == 7.0
        assert points_for("text", None, "anything") == 0.0
        assert points_for("rating", None, None) == 0.0

    def test_raw_score_is_a_rounded_sum(self):
        assert raw_score([0.1, 0.2, None, 3]) == 3.3
        assert raw_score([]) == 0.0
