"""Tests for the filter DSL."""

import pytest

from tom_kg.errors import InvalidFilter
from tom_kg.storage.filters import FieldCondition, Filter, MatchValue, field_equals, kind_is

ENTITY = {"kind": "entity", "eid": "ra", "category": "condition"}
RELATION = {
    "kind": "relation",
    "rid": "treats:: (mtx) -> (ra)",
    "name": "treats",
    "source_eid": "mtx",
    "dest_eid": "ra",
}


class TestFilterParse:
    """Tests for building filters from their dict form."""

    def test_none_is_empty(self):
        """No filter matches everything."""
        f = Filter.parse(None)
        assert f.is_empty
        assert f.matches(ENTITY)

    def test_leaf_list(self):
        """must accepts a list of leaf predicates."""
        f = Filter.parse({"must": [{"key": "kind", "match": {"value": "entity"}}]})
        assert f.matches(ENTITY)
        assert not f.matches(RELATION)

    def test_single_object_accepted(self):
        """A single predicate may stand in for a one-element list."""
        f = Filter.parse({"must": {"key": "kind", "match": {"value": "relation"}}})
        assert f.matches(RELATION)

    def test_nested_filter(self):
        """Entries may be nested filters."""
        f = Filter.parse(
            {
                "must": [
                    {"key": "kind", "match": {"value": "relation"}},
                    {"must_not": [{"key": "name", "match": {"value": "causes"}}]},
                ]
            }
        )
        assert f.matches(RELATION)
        assert not f.matches({**RELATION, "name": "causes"})

    def test_passthrough(self):
        """An existing Filter is returned unchanged."""
        f = Filter.all_of(kind_is("entity"))
        assert Filter.parse(f) is f

    def test_unknown_clause(self):
        """Clauses other than must / must_not are rejected."""
        with pytest.raises(InvalidFilter):
            Filter.parse({"should": []})

    def test_unknown_key(self):
        """Leaf keys must be payload fields."""
        with pytest.raises(InvalidFilter):
            Filter.parse({"must": [{"key": "colour", "match": {"value": "red"}}]})

    def test_non_scalar_value(self):
        """Match values must be scalars."""
        with pytest.raises(InvalidFilter):
            Filter.parse({"must": [{"key": "eid", "match": {"value": ["a", "b"]}}]})

    def test_null_value(self):
        """Null match values are rejected."""
        with pytest.raises(InvalidFilter):
            Filter.parse({"must": [{"key": "eid", "match": {"value": None}}]})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_value(self, value):
        """NaN and infinities are rejected."""
        with pytest.raises(InvalidFilter):
            Filter.parse({"must": [{"key": "importance", "match": {"value": value}}]})
        with pytest.raises(InvalidFilter):
            field_equals("importance", value)

    def test_not_a_mapping(self):
        """Filters must be mappings."""
        with pytest.raises(InvalidFilter):
            Filter.parse(["kind", "entity"])  # type: ignore[arg-type]


class TestFilterMatches:
    """Tests for in-process evaluation."""

    def test_conjunction(self):
        """All must entries have to hold."""
        f = Filter.all_of(kind_is("relation"), field_equals("source_eid", "mtx"))
        assert f.matches(RELATION)
        assert not f.matches({**RELATION, "source_eid": "ra"})

    def test_must_not(self):
        """A holding must_not entry excludes the payload."""
        f = Filter(must=[kind_is("entity")], must_not=[field_equals("eid", "ra")])
        assert not f.matches(ENTITY)
        assert f.matches({**ENTITY, "eid": "oa"})

    def test_must_not_on_missing_field(self):
        """must_not on a field the payload lacks does not exclude it."""
        f = Filter(must_not=[field_equals("eid", "ra")])
        assert f.matches(RELATION)


class TestHelpers:
    """Tests for predicate helpers."""

    def test_field_equals(self):
        """field_equals builds a leaf predicate."""
        condition = field_equals("category", "symptom")
        assert condition == FieldCondition(key="category", match=MatchValue(value="symptom"))

    def test_field_equals_unknown_key(self):
        """Unknown keys raise InvalidFilter."""
        with pytest.raises(InvalidFilter):
            field_equals("vectors", "x")

    def test_kind_is(self):
        """kind_is filters on the kind field."""
        assert kind_is("entity").matches(ENTITY)
        assert not kind_is("entity").matches(RELATION)
