"""
Filter DSL

Boolean filters over point payloads:

    {"must": [...], "must_not": [...]}

where each entry is either a leaf predicate {"key": ..., "match": {"value": ...}}
or a nested filter. A point matches when every `must` entry holds and no
`must_not` entry holds. The empty filter matches everything.

Example:
    >>> f = Filter.all_of(kind_is("relation"), field_equals("source_eid", "ra"))
    >>> f.matches({"kind": "relation", "source_eid": "ra"})
    True
    >>> Filter.parse({"must": {"key": "kind", "match": {"value": "entity"}}}).matches({"kind": "entity"})
    True

Backends compile filters to their own query language (see
LanceDBStore._compile_filter); in-memory stores can call Filter.matches.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tom_kg.errors import InvalidFilter
from tom_kg.types.nodes import PAYLOAD_FIELDS

Scalar = Union[str, int, float, bool]


class MatchValue(BaseModel):
    """Exact-equality match."""

    value: Scalar

    model_config = ConfigDict(extra="forbid")

    @field_validator("value", mode="before")
    @classmethod
    def _reject_non_scalar(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("match value must not be None")
        if not isinstance(value, (str, int, float, bool)):
            raise ValueError(f"match value must be a scalar, got {type(value).__name__}")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"match value must be a finite number, got {value!r}")
        return value


class FieldCondition(BaseModel):
    """Leaf predicate: payload[key] == match.value."""

    key: str
    match: MatchValue

    model_config = ConfigDict(extra="forbid")

    @field_validator("key")
    @classmethod
    def _known_key(cls, key: str) -> str:
        if not key:
            raise ValueError("filter key must not be empty")
        if key not in PAYLOAD_FIELDS:
            raise ValueError(
                f"unknown filter key {key!r}; expected one of {sorted(PAYLOAD_FIELDS)}"
            )
        return key

    def matches(self, payload: Mapping[str, Any]) -> bool:
        return payload.get(self.key) == self.match.value


class Filter(BaseModel):
    """Conjunction of `must` entries and negated `must_not` entries."""

    must: list[FieldCondition | Filter] = Field(default_factory=list)
    must_not: list[FieldCondition | Filter] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("must", "must_not", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        # The wire form allows a single object in place of a one-element list
        if value is None:
            return []
        if isinstance(value, (Mapping, BaseModel)):
            return [value]
        return value

    @classmethod
    def parse(cls, data: Filter | Mapping[str, Any] | None) -> Filter:
        """
        Build a Filter from its dict form.

        Raises:
            InvalidFilter: If the dict is not a well-formed filter
        """
        if data is None:
            return cls()
        if isinstance(data, Filter):
            return data
        if not isinstance(data, Mapping):
            raise InvalidFilter(f"Filter must be a mapping, got {type(data).__name__}")
        unknown = set(data) - {"must", "must_not"}
        if unknown:
            raise InvalidFilter(f"Unknown filter clauses: {sorted(unknown)}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise InvalidFilter(str(e)) from e

    @classmethod
    def all_of(cls, *conditions: FieldCondition | Filter) -> Filter:
        return cls(must=list(conditions))

    @property
    def is_empty(self) -> bool:
        return not self.must and not self.must_not

    def matches(self, payload: Mapping[str, Any]) -> bool:
        """Evaluate the filter against a payload mapping."""
        return all(c.matches(payload) for c in self.must) and not any(
            c.matches(payload) for c in self.must_not
        )


Filter.model_rebuild()


def field_equals(key: str, value: Scalar) -> FieldCondition:
    """
    Leaf predicate helper.

    Raises:
        InvalidFilter: On unknown key or non-scalar value
    """
    try:
        return FieldCondition(key=key, match=MatchValue(value=value))
    except ValidationError as e:
        raise InvalidFilter(str(e)) from e


def kind_is(kind: str) -> FieldCondition:
    return field_equals("kind", kind)
