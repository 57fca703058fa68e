"""
Unit Tests for the Function Assessment Rubric
"""

import pytest

from behaviorplan.assessment.rubric import Rubric, get_rubric
from behaviorplan.core.validation import ValidationError


class TestBundledRubric:
    """The shipped 21-item rubric."""

    def test_item_count(self, rubric):
        assert len(rubric) == 21
        assert rubric.item_ids == tuple(range(1, 22))

    def test_category_order(self, rubric):
        assert rubric.category_ids == ("escape", "attention", "access", "sensory")

    def test_category_mapping(self, rubric):
        grouped = {
            category: [item.id for item in items]
            for category, items in rubric.items_by_category().items()
        }
        assert grouped == {
            "escape": [1, 2, 7, 11, 16],
            "attention": [3, 4, 5, 6, 14],
            "access": [8, 9, 12, 13, 17],
            "sensory": [10, 15, 18, 19, 20, 21],
        }

    def test_weights(self, rubric):
        assert rubric.weight_for("strongly_agree") == 3
        assert rubric.weight_for("agree") == 2
        assert rubric.weight_for("disagree") == 1
        assert rubric.weight_for("n_a") is None
        assert rubric.min_weight == 1
        assert rubric.max_weight == 3

    def test_weight_for_unknown_value(self, rubric):
        with pytest.raises(ValidationError):
            rubric.weight_for("sometimes")

    def test_labels(self, rubric):
        assert rubric.label_for("escape") == "Escape/Avoidance"
        assert rubric.label_for("unknown") == "unknown"

    def test_format_prompt_replaces_every_placeholder(self, rubric):
        text = rubric.format_prompt(1, "Maya")
        assert "[Student]" not in text
        assert text.count("Maya") == 2

    def test_format_prompt_unknown_item(self, rubric):
        with pytest.raises(ValidationError, match="Unknown assessment item"):
            rubric.format_prompt(99, "Maya")

    def test_describe_category(self, rubric):
        assert rubric.describe_category("access", "Maya").startswith("Maya may engage")

    def test_unanswered(self, rubric):
        answered = [i for i in rubric.item_ids if i not in (4, 19)]
        assert rubric.unanswered(answered) == [4, 19]


class TestRubricValidation:
    """Malformed rubrics are rejected at load."""

    def _doc(self, **overrides):
        doc = {
            "categories": [{"id": "escape"}],
            "response_options": [{"value": "agree", "weight": 2}],
            "items": [{"id": 1, "category": "escape", "text": "x"}],
        }
        doc.update(overrides)
        return doc

    def test_minimal_rubric(self):
        rubric = Rubric.from_dict(self._doc())
        assert len(rubric) == 1
        assert rubric.label_for("escape") == "escape"

    def test_duplicate_item_ids(self):
        items = [
            {"id": 1, "category": "escape", "text": "x"},
            {"id": 1, "category": "escape", "text": "y"},
        ]
        with pytest.raises(ValidationError, match="Duplicate rubric item id"):
            Rubric.from_dict(self._doc(items=items))

    def test_undeclared_category(self):
        items = [{"id": 1, "category": "sensory", "text": "x"}]
        with pytest.raises(ValidationError, match="undeclared category"):
            Rubric.from_dict(self._doc(items=items))

    def test_no_weighted_option(self):
        with pytest.raises(ValidationError, match="at least one weighted"):
            Rubric.from_dict(self._doc(response_options=[{"value": "n_a", "weight": None}]))

    def test_two_not_applicable_options(self):
        options = [
            {"value": "agree", "weight": 2},
            {"value": "n_a", "weight": None},
            {"value": "unsure", "weight": None},
        ]
        with pytest.raises(ValidationError, match="at most one"):
            Rubric.from_dict(self._doc(response_options=options))

    def test_missing_keys(self):
        with pytest.raises(ValidationError, match="Malformed rubric"):
            Rubric.from_dict({"categories": []})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Rubric.from_json(tmp_path / "missing.json")


def test_get_rubric_singleton():
    assert get_rubric() is get_rubric()
    assert get_rubric(force_reload=True) is get_rubric()
