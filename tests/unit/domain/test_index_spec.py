"""Unit tests for index classification and normalization."""

import pytest

from doccrud.domain.entities import (
    Compound,
    ComputedIndex,
    DottedPathIndex,
    Field,
    FieldListIndex,
    OptionsIndex,
    parse_index_spec,
    r,
)
from doccrud.domain.exceptions import ConfigurationError
from doccrud.domain.services import normalize_index


class TestParseIndexSpec:
    def test_string_is_dotted_path(self) -> None:
        assert parse_index_spec("city", "address.city") == DottedPathIndex("address.city")

    def test_string_without_dot_is_single_field(self) -> None:
        assert parse_index_spec("email", "email") == DottedPathIndex("email")

    def test_list_is_field_list(self) -> None:
        spec = parse_index_spec("name", ["last_name", "first_name"])

        assert spec == FieldListIndex(("last_name", "first_name"))

    def test_mapping_is_options(self) -> None:
        assert isinstance(parse_index_spec("email", {"unique": True}), OptionsIndex)

    def test_callable_is_computed(self) -> None:
        assert isinstance(parse_index_spec("tags", lambda r: r.row("tags")), ComputedIndex)

    @pytest.mark.parametrize("raw", [42, None, "", "a..b", [], ["a", 3]])
    def test_unknown_shape_rejected(self, raw) -> None:
        with pytest.raises(ConfigurationError):
            parse_index_spec("bad", raw)


class TestNormalizeIndex:
    def test_dotted_path_builds_nested_accessor(self) -> None:
        args = normalize_index(r, "city", DottedPathIndex("address.city"))

        assert isinstance(args.expression, Field)
        assert args.expression.path == ("address", "city")
        assert args.options == {}

    def test_path_without_dot_indexes_that_field(self) -> None:
        args = normalize_index(r, "by_email", DottedPathIndex("email"))

        assert args.expression.path == ("email",)

    def test_field_list_builds_compound(self) -> None:
        args = normalize_index(r, "name", FieldListIndex(("last_name", "first_name")))

        assert isinstance(args.expression, Compound)
        assert [item.path for item in args.expression.items] == [("last_name",), ("first_name",)]

    def test_options_pass_through_without_expression(self) -> None:
        args = normalize_index(r, "email", OptionsIndex({"unique": True}))

        assert args.expression is None
        assert args.options == {"unique": True}

    def test_computed_invokes_function_with_root(self) -> None:
        received = []

        def build(root):
            received.append(root)
            return root.row("tags")

        args = normalize_index(r, "tags", ComputedIndex(build))

        assert received == [r]
        assert args.expression.path == ("tags",)

    def test_computed_must_return_expression(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_index(r, "broken", ComputedIndex(lambda root: "tags"))
