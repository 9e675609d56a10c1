"""
Extraction Types

Structured-output schemas handed to the LLM, and the cleaned records the
extractor returns.

LLM-facing schemas (loose, what the model fills in):
    - CandidateEntity / EntityExtraction
    - CandidateRelation / RelationExtraction

Extractor output (normalized, validated):
    - ExtractedEntity: eid + category + importance
    - ExtractedRelation: name + source + target
"""

from pydantic import BaseModel, Field

from tom_kg.types.nodes import Category, CategoryLabel, make_rid


class CandidateEntity(BaseModel):
    """An entity as proposed by the model."""

    eid: str = Field(
        ...,
        description="The entity id: the plain, human readable name of the entity as it appears in the text",
    )
    category: CategoryLabel | None = Field(
        default=None,
        description="One of the allowed categories, or null if no category fits well",
    )
    importance: float = Field(
        default=0.0,
        description="How relevant / important the entity is to the text as a whole, from 0 to 1",
    )


class EntityExtraction(BaseModel):
    """Entity extraction output."""

    entities: list[CandidateEntity] = Field(default_factory=list)


class CandidateRelation(BaseModel):
    """A relation as proposed by the model."""

    name: str = Field(
        ...,
        description='Name of the relationship, e.g. "causes", "associated with", "prevents", "subtype of"',
    )
    source: str = Field(..., description="eid of the source entity, exactly as given")
    target: str = Field(..., description="eid of the target entity, exactly as given")


class RelationExtraction(BaseModel):
    """Relation extraction output."""

    relations: list[CandidateRelation] = Field(default_factory=list)


class ExtractedEntity(BaseModel):
    """An entity that survived category filtering and normalization."""

    eid: str
    category: Category
    importance: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractedRelation(BaseModel):
    """A relation whose endpoints are both among the extracted entities."""

    name: str
    source: str
    target: str

    @property
    def rid(self) -> str:
        return make_rid(self.name, self.source, self.target)
