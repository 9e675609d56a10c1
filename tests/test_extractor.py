"""Tests for entity and relation extraction."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeLLMProvider

from tom_kg.config import TomConfig
from tom_kg.errors import ExtractionFailed
from tom_kg.ingestion.extraction import extract_entities, extract_relations
from tom_kg.types import (
    CandidateEntity,
    CandidateRelation,
    Category,
    EntityExtraction,
    ExtractedEntity,
)


def _entities(*specs: tuple[str, str]) -> list[ExtractedEntity]:
    return [ExtractedEntity(eid=eid, category=Category(cat), importance=0.5) for eid, cat in specs]


class TestExtractEntities:
    """Tests for extract_entities."""

    @pytest.mark.asyncio
    async def test_categories_closed(self, ra_llm):
        """Every returned entity carries a category from the closed set."""
        entities = await extract_entities("RA text", ra_llm)
        assert entities
        assert all(Category(e.category) in Category for e in entities)

    @pytest.mark.asyncio
    async def test_uncategorized_dropped(self, ra_llm):
        """Entities without a category are dropped, not returned empty."""
        entities = await extract_entities("RA text", ra_llm)
        assert "the patient" not in {e.eid for e in entities}
        assert len(entities) == 3

    @pytest.mark.asyncio
    async def test_eids_normalized(self, ra_llm):
        """eids are lower-cased."""
        entities = await extract_entities("RA text", ra_llm)
        assert entities[0].eid == "rheumatoid arthritis"

    @pytest.mark.asyncio
    async def test_duplicates_keep_highest_importance(self):
        """Repeated eids collapse to one entry with the highest importance."""
        llm = FakeLLMProvider(
            entities=[
                CandidateEntity(eid="Aspirin", category="medication", importance=0.2),
                CandidateEntity(eid="aspirin", category="medication", importance=0.7),
                CandidateEntity(eid="ASPIRIN ", category="medication", importance=0.4),
            ]
        )
        entities = await extract_entities("text", llm)
        assert len(entities) == 1
        assert entities[0].importance == 0.7

    @pytest.mark.asyncio
    async def test_importance_clamped(self):
        """Out-of-range importance is clamped to [0, 1]."""
        llm = FakeLLMProvider(
            entities=[
                CandidateEntity(eid="a", category="organ", importance=3.0),
                CandidateEntity(eid="b", category="organ", importance=-1.0),
            ]
        )
        entities = await extract_entities("text", llm)
        assert [e.importance for e in entities] == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_empty_text_skips_llm(self):
        """Blank text returns [] without calling the model."""
        llm = FakeLLMProvider()
        assert await extract_entities("   ", llm) == []
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_text_in_prompt(self, ra_llm):
        """The input text is sent to the model."""
        await extract_entities("Methotrexate is first line.", ra_llm)
        schema, prompt = ra_llm.prompts[0]
        assert schema == "EntityExtraction"
        assert "Methotrexate is first line." in prompt

    @pytest.mark.asyncio
    async def test_tier_selects_model(self, ra_llm):
        """The tier resolves to the configured model."""
        config = TomConfig(llm_model_cheap="tiny-model")
        await extract_entities("text", ra_llm, tier="cheap", config=config)
        assert ra_llm.models_used == ["tiny-model"]

    @pytest.mark.asyncio
    async def test_unknown_tier(self, ra_llm):
        """Unknown tiers raise ValueError before any call."""
        with pytest.raises(ValueError):
            await extract_entities("text", ra_llm, tier="premium")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Provider errors surface as ExtractionFailed."""
        llm = MagicMock()
        llm.model_name = "gpt-4o"
        llm.with_model.return_value = llm
        llm.generate_structured = AsyncMock(side_effect=ConnectionError("reset by peer"))
        with pytest.raises(ExtractionFailed):
            await extract_entities("text", llm)

    @pytest.mark.asyncio
    async def test_invalid_output(self):
        """Schema-invalid output surfaces as ExtractionFailed."""
        llm = MagicMock()
        llm.model_name = "gpt-4o"
        llm.with_model.return_value = llm
        llm.generate_structured = AsyncMock(
            return_value={"entities": [{"eid": "x", "category": "disease"}]}
        )
        with pytest.raises(ExtractionFailed):
            await extract_entities("text", llm)

    @pytest.mark.asyncio
    async def test_dict_output_accepted(self):
        """A valid dict is validated into the schema."""
        llm = MagicMock()
        llm.model_name = "gpt-4o"
        llm.with_model.return_value = llm
        llm.generate_structured = AsyncMock(
            return_value={"entities": [{"eid": "Ulcer", "category": "condition", "importance": 0.4}]}
        )
        entities = await extract_entities("text", llm)
        assert entities == [ExtractedEntity(eid="ulcer", category=Category.CONDITION, importance=0.4)]
        assert llm.generate_structured.await_args.args[1] is EntityExtraction


class TestExtractRelations:
    """Tests for extract_relations."""

    @pytest.mark.asyncio
    async def test_relations_between_known_entities(self, ra_llm):
        """Relations are normalized and keep only known endpoints."""
        entities = await extract_entities("RA text", ra_llm)
        relations = await extract_relations("RA text", entities, ra_llm)

        rids = {r.rid for r in relations}
        assert rids == {
            "treats:: (methotrexate) -> (rheumatoid arthritis)",
            "causes:: (rheumatoid arthritis) -> (joint pain)",
        }

    @pytest.mark.asyncio
    async def test_entities_listed_in_prompt(self, ra_llm):
        """The entity list is part of the relation prompt."""
        entities = _entities(("ra", "condition"), ("mtx", "medication"))
        await extract_relations("text", entities, ra_llm)
        schema, prompt = ra_llm.prompts[-1]
        assert schema == "RelationExtraction"
        assert '"eid": "ra"' in prompt
        assert '"category": "medication"' in prompt

    @pytest.mark.asyncio
    async def test_fewer_than_two_entities(self):
        """No model call when there is nothing to relate."""
        llm = FakeLLMProvider()
        assert await extract_relations("text", _entities(("ra", "condition")), llm) == []
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_duplicates_collapsed(self):
        """The same triple is returned once."""
        llm = FakeLLMProvider(
            relations=[
                CandidateRelation(name="treats", source="mtx", target="ra"),
                CandidateRelation(name="Treats", source="MTX", target="RA"),
            ]
        )
        entities = _entities(("ra", "condition"), ("mtx", "medication"))
        relations = await extract_relations("text", entities, llm)
        assert len(relations) == 1

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Provider errors surface as ExtractionFailed."""
        llm = MagicMock()
        llm.model_name = "gpt-4o"
        llm.with_model.return_value = llm
        llm.generate_structured = AsyncMock(side_effect=TimeoutError())
        entities = _entities(("ra", "condition"), ("mtx", "medication"))
        with pytest.raises(ExtractionFailed):
            await extract_relations("text", entities, llm)
