"""
Entity and Relation Extractor

Extracts medical entities and the relations between them from free text
using two structured LLM passes:

1. Entity Extraction: every entity with a category from the closed set and
   an importance score. Entities with no fitting category are dropped.
2. Relation Extraction: directed, named relations between the entities found
   in step 1, over the same text.

Example:
    >>> from tom_kg.providers.llm import OpenAILLMProvider
    >>> llm = OpenAILLMProvider()
    >>> entities = await extract_entities(text, llm, tier="top")
    >>> relations = await extract_relations(text, entities, llm, tier="top")
"""

import json
import logging
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from tom_kg.errors import ExtractionFailed
from tom_kg.types import (
    Category,
    EntityExtraction,
    ExtractedEntity,
    ExtractedRelation,
    RelationExtraction,
    normalize_id,
)

if TYPE_CHECKING:
    from tom_kg.config import TomConfig
    from tom_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_CATEGORY_LIST = ", ".join(c.value for c in Category)


# -----------------------------------------------------------------------------
# System Prompts
# -----------------------------------------------------------------------------

_ENTITY_SYSTEM_PROMPT = f"""\
You are a clinician building a medical ontology from text.

## Your Task
Extract all entities from the input and categorize each one.

## Fields
- **eid**: the entity id, which is the plain, human readable name of the entity
  (e.g. "rheumatoid arthritis", "proton pump inhibitor", "endoscopy")
- **category**: exactly one of: {_CATEGORY_LIST}
- **importance**: a score from 0 to 1 rating how relevant / important the
  entity is to the text as a whole

## Rules
- If there is no good category for an entity then DO NOT categorize it:
  leave category null.
- Use the entity name only, without descriptions or parentheticals."""

_ENTITY_USER_TEMPLATE = """\
INPUT:
---
{text}
---"""

_RELATION_SYSTEM_PROMPT = """\
You are a clinician building a medical ontology from text.

You are provided with input text and a list of entities within this text.
Your job is to extract the relationships between the entities, as described
by the input text.

Remember to think about hierarchical relations like "subtype of".

Each relation has the following fields:
- name: the name of the relationship, such as "causes", "associated with",
  "treats" or "prevents"
- source: the source entity of the relation
- target: the target entity of the relation

Make sure source and target use the exact eid of an entity from the list.
Only relate the listed entities."""

_RELATION_USER_TEMPLATE = """\
ENTITIES OF INTEREST:
---
{entities}
---

INPUT:
---
{text}
---"""


# -----------------------------------------------------------------------------
# Core Extraction Functions
# -----------------------------------------------------------------------------


def _llm_for_tier(
    llm: "LLMProvider",
    tier: str,
    config: "TomConfig | None",
) -> "LLMProvider":
    """Switch the provider to the tier's model when it differs."""
    if config is None:
        from tom_kg.config import TomConfig
        config = TomConfig()
    model = config.model_for_tier(tier)
    if llm.model_name == model:
        return llm
    return llm.with_model(model)


async def _structured_call(
    llm: "LLMProvider",
    prompt: str,
    schema: type[T],
    system: str,
) -> T:
    """Run one structured call, surfacing every failure as ExtractionFailed."""
    try:
        result = await llm.generate_structured(prompt, schema, system=system)
        if not isinstance(result, schema):
            # Some providers hand back a raw dict
            result = schema.model_validate(result)
    except ValidationError as e:
        raise ExtractionFailed(f"{schema.__name__} output failed validation: {e}") from e
    except Exception as e:
        raise ExtractionFailed(f"{schema.__name__} call to {llm.model_name} failed: {e}") from e
    return result


async def extract_entities(
    text: str,
    llm: "LLMProvider",
    *,
    tier: str = "top",
    config: "TomConfig | None" = None,
) -> list[ExtractedEntity]:
    """
    Extract categorized entities from text.

    Entities the model could not confidently categorize are dropped, not
    returned with an empty category. Duplicate eids collapse into one
    entry carrying the highest importance.

    Args:
        text: Free text to extract from
        llm: LLM provider for generation
        tier: Cost/quality tier ("top", "fast", "cheap")
        config: Resolves tier to model name (defaults to TomConfig())

    Returns:
        ExtractedEntity list in first-seen order

    Raises:
        ExtractionFailed: Transport error or schema-invalid model output
        ValueError: Unknown tier
    """
    if not text.strip():
        return []

    model = _llm_for_tier(llm, tier, config)
    result = await _structured_call(
        model,
        _ENTITY_USER_TEMPLATE.format(text=text),
        EntityExtraction,
        _ENTITY_SYSTEM_PROMPT,
    )

    entities: dict[str, ExtractedEntity] = {}
    dropped = 0
    for candidate in result.entities:
        eid = normalize_id(candidate.eid)
        if not eid or candidate.category is None:
            dropped += 1
            continue
        importance = min(max(candidate.importance, 0.0), 1.0)
        existing = entities.get(eid)
        if existing is not None and existing.importance >= importance:
            continue
        entities[eid] = ExtractedEntity(
            eid=eid,
            category=Category(candidate.category),
            importance=importance,
        )

    if dropped:
        logger.debug(f"Dropped {dropped} entities without a category")
    return list(entities.values())


async def extract_relations(
    text: str,
    entities: list[ExtractedEntity],
    llm: "LLMProvider",
    *,
    tier: str = "top",
    config: "TomConfig | None" = None,
) -> list[ExtractedRelation]:
    """
    Extract relations between already-extracted entities.

    Relations whose source or target is not among `entities` are dropped,
    so every returned relation references entities from the same text.

    Args:
        text: The text the entities were extracted from
        entities: Output of extract_entities for the same text
        llm: LLM provider for generation
        tier: Cost/quality tier ("top", "fast", "cheap")
        config: Resolves tier to model name

    Returns:
        ExtractedRelation list, one per distinct (name, source, target)

    Raises:
        ExtractionFailed: Transport error or schema-invalid model output
    """
    if len(entities) < 2 or not text.strip():
        return []

    known = {e.eid for e in entities}
    rendered = "\n\n".join(
        json.dumps({"eid": e.eid, "category": Category(e.category).value}) for e in entities
    )

    model = _llm_for_tier(llm, tier, config)
    result = await _structured_call(
        model,
        _RELATION_USER_TEMPLATE.format(entities=rendered, text=text),
        RelationExtraction,
        _RELATION_SYSTEM_PROMPT,
    )

    relations: dict[str, ExtractedRelation] = {}
    for candidate in result.relations:
        relation = ExtractedRelation(
            name=normalize_id(candidate.name),
            source=normalize_id(candidate.source),
            target=normalize_id(candidate.target),
        )
        if not relation.name:
            continue
        if relation.source not in known or relation.target not in known:
            logger.debug(f"Dropping relation with unknown endpoint: {relation.rid}")
            continue
        relations.setdefault(relation.rid, relation)

    return list(relations.values())
