"""
Node Types

A node is one point in the TOM collection. The `kind` payload field
partitions the collection into two logical tables:

    - Entity: a medical concept tagged with a category
    - Relation: a directed, named edge between two entities

Every node carries two named vectors of the same dimensionality. Their
meaning differs by kind:

    kind      primary                 secondary
    -------   ---------------------   -------------------------
    entity    embedding of eid        embedding of category
    relation  embedding of name       embedding of rid

Search methods take the vector name explicitly, so keep this table in mind
when choosing which space to query.
"""

import re
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VectorName = Literal["primary", "secondary"]
VECTOR_NAMES: tuple[str, ...] = ("primary", "secondary")

NodeKind = Literal["entity", "relation"]


class Category(str, Enum):
    """Closed set of entity categories."""

    CONDITION = "condition"
    SYMPTOM = "symptom"
    MEDICATION = "medication"
    PROCEDURE = "procedure"
    IMAGING = "imaging"
    LAB_TEST = "lab test"
    DIAGNOSTIC_TEST = "diagnostic test"
    ORGAN = "organ"
    ORGAN_SYSTEM = "organ system"
    CLINICAL_FINDING = "clinical finding"


# Literal mirror of Category for LLM-facing schemas
CategoryLabel = Literal[
    "condition",
    "symptom",
    "medication",
    "procedure",
    "imaging",
    "lab test",
    "diagnostic test",
    "organ",
    "organ system",
    "clinical finding",
]

_WHITESPACE = re.compile(r"\s+")


def normalize_id(value: str) -> str:
    """Lower-case an identifier and collapse runs of whitespace."""
    return _WHITESPACE.sub(" ", value).strip().lower()


def make_rid(name: str, source_eid: str, dest_eid: str) -> str:
    """Compose a relation id from its triple."""
    return f"{name}:: ({source_eid}) -> ({dest_eid})"


class NamedVectors(BaseModel):
    """
    The two vectors stored with every node.

    Accepts either a {"primary": [...], "secondary": [...]} mapping or a
    single flat vector. A flat vector comes from a collection created with
    one unnamed vector field and is served under both names.
    """

    primary: list[float]
    secondary: list[float]

    @model_validator(mode="before")
    @classmethod
    def _normalize_shape(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return value
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            flat = list(value)
            return {"primary": flat, "secondary": flat}
        # numpy / pyarrow arrays
        if hasattr(value, "tolist"):
            flat = value.tolist()
            return {"primary": flat, "secondary": flat}
        return value

    @model_validator(mode="after")
    def _same_dimensions(self) -> "NamedVectors":
        if len(self.primary) != len(self.secondary):
            raise ValueError(
                f"primary and secondary vectors differ in size: "
                f"{len(self.primary)} != {len(self.secondary)}"
            )
        return self

    @property
    def dimensions(self) -> int:
        return len(self.primary)

    def get(self, name: VectorName) -> list[float]:
        """Return the vector stored under `name`."""
        if name == "primary":
            return self.primary
        if name == "secondary":
            return self.secondary
        raise ValueError(f"Unknown vector name: {name!r}")


class Entity(BaseModel):
    """
    A graph node representing one extracted concept.

    Attributes:
        eid: Unique, lower-cased name of the concept; also the point id
        category: One of the ten Category values
        importance: Relevance of the entity to the text it came from (0-1).
            Kept as payload metadata; None for entities written without it.
        vectors: primary = embedding of eid, secondary = embedding of category.
            None when read back without vectors.
    """

    kind: Literal["entity"] = "entity"
    eid: str
    category: Category
    importance: float | None = Field(default=None, ge=0.0, le=1.0)
    vectors: NamedVectors | None = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("eid")
    @classmethod
    def _normalize_eid(cls, value: str) -> str:
        value = normalize_id(value)
        if not value:
            raise ValueError("eid must not be empty")
        return value

    @property
    def point_id(self) -> str:
        return self.eid


class Relation(BaseModel):
    """
    A directed, named edge between two entities.

    `source_eid` and `dest_eid` reference entity points but are not enforced
    by the store; they are resolved at query time.

    Attributes:
        rid: Unique relation id, "name:: (source) -> (dest)"; also the point id
        name: Relationship name, e.g. "causes", "treats", "subtype of"
        vectors: primary = embedding of name, secondary = embedding of rid
    """

    kind: Literal["relation"] = "relation"
    rid: str
    name: str
    source_eid: str
    dest_eid: str
    vectors: NamedVectors | None = None

    @field_validator("name", "source_eid", "dest_eid")
    @classmethod
    def _normalize_fields(cls, value: str) -> str:
        value = normalize_id(value)
        if not value:
            raise ValueError("relation fields must not be empty")
        return value

    @classmethod
    def from_triple(
        cls,
        name: str,
        source_eid: str,
        dest_eid: str,
        vectors: NamedVectors | None = None,
    ) -> "Relation":
        """Build a relation whose rid is derived from the normalized triple."""
        name, source_eid, dest_eid = (normalize_id(v) for v in (name, source_eid, dest_eid))
        return cls(
            rid=make_rid(name, source_eid, dest_eid),
            name=name,
            source_eid=source_eid,
            dest_eid=dest_eid,
            vectors=vectors,
        )

    @property
    def point_id(self) -> str:
        return self.rid


Node = Annotated[Entity | Relation, Field(discriminator="kind")]

# Payload fields a filter may reference
PAYLOAD_FIELDS: frozenset[str] = frozenset(
    {"kind", "eid", "category", "importance", "rid", "name", "source_eid", "dest_eid"}
)


class ScoredNode(BaseModel):
    """A node returned by vector search with its cosine similarity."""

    node: Node
    score: float

    @property
    def point_id(self) -> str:
        return self.node.point_id
