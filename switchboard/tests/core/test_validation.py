"""Unit tests for argument guards."""

import pytest

from switchboard.core.errors import ArgumentError
from switchboard.core.validation import (
    at_most_one_of,
    exactly_one_of,
    is_provided,
    optional_bool,
    optional_choice,
    optional_int,
    optional_mapping,
    optional_number,
    optional_str,
    optional_str_list,
    require_choice,
    require_int,
    require_mapping,
    require_number,
    require_str,
    require_str_list,
)


class TestRequireMapping:
    """Tests for the argument object guard."""

    def test_none_is_empty_object(self) -> None:
        assert require_mapping(None) == {}

    def test_returns_copy(self) -> None:
        args = {"a": 1}
        result = require_mapping(args)
        assert result == args
        assert result is not args

    @pytest.mark.parametrize("value", [[], "text", 3])
    def test_rejects_non_mapping(self, value) -> None:
        with pytest.raises(ArgumentError, match="Arguments must be an object"):
            require_mapping(value)


class TestStrings:
    """Tests for string guards."""

    def test_require_str_present(self) -> None:
        assert require_str({"content": "Buy milk"}, "content") == "Buy milk"

    def test_require_str_missing(self) -> None:
        with pytest.raises(ArgumentError, match="'content' is required"):
            require_str({}, "content")

    def test_require_str_blank(self) -> None:
        with pytest.raises(ArgumentError, match="must not be empty"):
            require_str({"content": "   "}, "content")

    def test_require_str_wrong_type(self) -> None:
        with pytest.raises(ArgumentError, match="must be a string"):
            require_str({"content": 5}, "content")

    def test_optional_str_absent(self) -> None:
        assert optional_str({}, "note") is None

    def test_optional_str_allows_empty(self) -> None:
        assert optional_str({"note": ""}, "note") == ""

    def test_is_provided(self) -> None:
        assert is_provided("x")
        assert is_provided(0)
        assert not is_provided(None)
        assert not is_provided("  ")


class TestNumbers:
    """Tests for integer and number guards."""

    def test_optional_int_accepts_integral_float(self) -> None:
        assert optional_int({"priority": 2.0}, "priority") == 2

    def test_optional_int_rejects_bool(self) -> None:
        with pytest.raises(ArgumentError, match="must be an integer"):
            optional_int({"limit": True}, "limit")

    def test_optional_int_rejects_fraction(self) -> None:
        with pytest.raises(ArgumentError, match="must be an integer"):
            optional_int({"limit": 2.5}, "limit")

    def test_optional_int_choices(self) -> None:
        with pytest.raises(ArgumentError, match="must be one of: 1, 2, 3, 4"):
            optional_int({"priority": 5}, "priority", choices=(1, 2, 3, 4))

    def test_optional_int_bounds(self) -> None:
        with pytest.raises(ArgumentError, match=">= 1"):
            optional_int({"limit": 0}, "limit", minimum=1)
        with pytest.raises(ArgumentError, match="<= 200"):
            optional_int({"limit": 201}, "limit", maximum=200)

    def test_require_int_missing(self) -> None:
        with pytest.raises(ArgumentError, match="'sender_id' is required"):
            require_int({}, "sender_id")

    def test_optional_number_accepts_float(self) -> None:
        assert optional_number({"grade": 87.5}, "grade") == 87.5

    def test_require_number_rejects_string(self) -> None:
        with pytest.raises(ArgumentError, match="must be a number"):
            require_number({"grade": "A"}, "grade")


class TestCollections:
    """Tests for list, mapping, bool and choice guards."""

    def test_optional_str_list(self) -> None:
        assert optional_str_list({"labels": ["a", "b"]}, "labels") == ["a", "b"]

    def test_optional_str_list_rejects_mixed(self) -> None:
        with pytest.raises(ArgumentError, match="array of strings"):
            optional_str_list({"labels": ["a", 1]}, "labels")

    def test_require_str_list_rejects_empty(self) -> None:
        with pytest.raises(ArgumentError, match="at least one item"):
            require_str_list({"taskIds": []}, "taskIds")

    def test_optional_mapping(self) -> None:
        assert optional_mapping({"variables": {"a": 1}}, "variables") == {"a": 1}
        with pytest.raises(ArgumentError, match="must be an object"):
            optional_mapping({"variables": [1]}, "variables")

    def test_optional_bool(self) -> None:
        assert optional_bool({"isFavorite": False}, "isFavorite") is False
        with pytest.raises(ArgumentError, match="must be a boolean"):
            optional_bool({"isFavorite": "yes"}, "isFavorite")

    def test_optional_choice(self) -> None:
        assert optional_choice({"viewStyle": "board"}, "viewStyle", ("list", "board")) == "board"
        with pytest.raises(ArgumentError, match="must be one of: list, board"):
            optional_choice({"viewStyle": "grid"}, "viewStyle", ("list", "board"))

    def test_require_choice_missing(self) -> None:
        with pytest.raises(ArgumentError, match="'scaleTier' is required"):
            require_choice({}, "scaleTier", ("BASIC",))


class TestExclusiveKeys:
    """Tests for one-of guards."""

    KEYS = ("projectId", "sectionId", "parentId")

    def test_exactly_one_returns_key_and_value(self) -> None:
        assert exactly_one_of({"sectionId": "s1"}, self.KEYS) == ("sectionId", "s1")

    def test_exactly_one_ignores_blank_values(self) -> None:
        args = {"projectId": "", "sectionId": "s1", "parentId": None}
        assert exactly_one_of(args, self.KEYS) == ("sectionId", "s1")

    def test_exactly_one_rejects_none(self) -> None:
        with pytest.raises(ArgumentError, match="Provide exactly one of: projectId, sectionId, parentId"):
            exactly_one_of({}, self.KEYS)

    def test_exactly_one_rejects_two(self) -> None:
        with pytest.raises(ArgumentError, match="Provide exactly one of"):
            exactly_one_of({"projectId": "p1", "parentId": "t1"}, self.KEYS)

    def test_at_most_one_allows_none(self) -> None:
        assert at_most_one_of({}, ("taskId", "projectId")) is None

    def test_at_most_one_rejects_two(self) -> None:
        with pytest.raises(ArgumentError):
            at_most_one_of({"taskId": "t", "projectId": "p"}, ("taskId", "projectId"))
