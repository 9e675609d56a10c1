"""Tests for IngestionPipeline."""

import pytest
from conftest import FakeLLMProvider

from tom_kg.errors import ExtractionFailed
from tom_kg.ingestion.pipeline import IngestionPipeline
from tom_kg.types import CandidateEntity, Entity, Relation

RA_TEXT = "Methotrexate treats rheumatoid arthritis, which causes joint pain."


class TestIngestText:
    """Tests for ingest_text."""

    @pytest.mark.asyncio
    async def test_entities_and_relations_written(self, store, embeddings, config, ra_llm):
        """Extracted entities and relations become points."""
        await store.initialize()
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        result = await pipeline.ingest_text(RA_TEXT, source="note-1")

        assert result.ok
        assert result.source == "note-1"
        assert set(result.entity_ids) == {"rheumatoid arthritis", "methotrexate", "joint pain"}
        assert set(result.relation_ids) == {
            "treats:: (methotrexate) -> (rheumatoid arthritis)",
            "causes:: (rheumatoid arthritis) -> (joint pain)",
        }
        kinds = {type(p) for p in store.points.values()}
        assert kinds == {Entity, Relation}
        assert result.duration_seconds >= 0

    @pytest.mark.asyncio
    async def test_idempotent(self, store, embeddings, config, ra_llm):
        """Ingesting the same text twice leaves the same ids."""
        await store.initialize()
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        first = await pipeline.ingest_text(RA_TEXT)
        ids_after_first = set(store.points)
        second = await pipeline.ingest_text(RA_TEXT)

        assert set(store.points) == ids_after_first
        assert first.entity_ids == second.entity_ids
        assert len(store.points) == 5

    @pytest.mark.asyncio
    async def test_importance_persisted(self, store, embeddings, config, ra_llm):
        """Importance is kept as payload on the entity point."""
        await store.initialize()
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        await pipeline.ingest_text(RA_TEXT)

        assert store.points["rheumatoid arthritis"].importance == 0.9

    @pytest.mark.asyncio
    async def test_min_importance_prunes(self, store, embeddings, config, ra_llm):
        """Entities below min_importance are skipped, with their relations."""
        await store.initialize()
        config = config.with_overrides(min_importance=0.7)
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        result = await pipeline.ingest_text(RA_TEXT)

        assert result.pruned_entity_ids == ["joint pain"]
        assert "joint pain" not in store.points
        assert result.relation_ids == ["treats:: (methotrexate) -> (rheumatoid arthritis)"]

    @pytest.mark.asyncio
    async def test_relations_disabled(self, store, embeddings, config, ra_llm):
        """With extract_relations off only entities are written."""
        await store.initialize()
        config = config.with_overrides(extract_relations=False)
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        result = await pipeline.ingest_text(RA_TEXT)

        assert result.relation_ids == []
        assert [schema for schema, _ in ra_llm.prompts] == ["EntityExtraction"]

    @pytest.mark.asyncio
    async def test_single_entity_skips_relation_pass(self, store, embeddings, config):
        """One entity means no relation call."""
        await store.initialize()
        llm = FakeLLMProvider(entities=[CandidateEntity(eid="ulcer", category="condition", importance=1.0)])
        pipeline = IngestionPipeline(store, llm, embeddings, config)

        result = await pipeline.ingest_text("A gastric ulcer.")

        assert result.entity_ids == ["ulcer"]
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_failed_entity_not_related(self, store, embeddings, config, ra_llm):
        """Entities that failed to write are left out of relation extraction."""
        await store.initialize()
        embeddings.fail_on.add("joint pain")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        result = await pipeline.ingest_text(RA_TEXT)

        assert not result.ok
        assert [f.point_id for f in result.failures] == ["joint pain"]
        assert result.relation_ids == ["treats:: (methotrexate) -> (rheumatoid arthritis)"]

    @pytest.mark.asyncio
    async def test_extraction_failure_propagates(self, store, embeddings, config, ra_llm):
        """ExtractionFailed is raised to the caller."""
        await store.initialize()

        async def broken(*args, **kwargs):
            raise ConnectionError("down")

        ra_llm.generate_structured = broken
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        with pytest.raises(ExtractionFailed):
            await pipeline.ingest_text(RA_TEXT)
        assert store.points == {}


class TestIngestDirectory:
    """Tests for ingest_directory."""

    @pytest.mark.asyncio
    async def test_per_file_results(self, tmp_path, store, embeddings, config, ra_llm):
        """Each matching file gets a result, in sorted order."""
        await store.initialize()
        (tmp_path / "b.txt").write_text(RA_TEXT, encoding="utf-8")
        (tmp_path / "a.txt").write_text(RA_TEXT, encoding="utf-8")
        (tmp_path / "skip.md").write_text("ignored", encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        results = await pipeline.ingest_directory(tmp_path)

        assert [r.file for r in results] == [str(tmp_path / "a.txt"), str(tmp_path / "b.txt")]
        assert all(r.ok for r in results)
        assert results[0].result.source == str(tmp_path / "a.txt")

    @pytest.mark.asyncio
    async def test_extension_without_dot(self, tmp_path, store, embeddings, config, ra_llm):
        """ext may be given without the leading dot."""
        await store.initialize()
        (tmp_path / "note.md").write_text(RA_TEXT, encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        results = await pipeline.ingest_directory(tmp_path, "md")

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_abort(self, tmp_path, store, embeddings, config, ra_llm):
        """A failing file is reported and later files are still ingested."""
        await store.initialize()
        (tmp_path / "a.txt").write_bytes(b"\xff\xfe not utf-8 \xff")
        (tmp_path / "b.txt").write_text(RA_TEXT, encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        results = await pipeline.ingest_directory(tmp_path)

        assert [r.ok for r in results] == [False, True]
        assert results[0].error
        assert results[0].result is None
        assert "rheumatoid arthritis" in store.points

    @pytest.mark.asyncio
    async def test_recursive(self, tmp_path, store, embeddings, config, ra_llm):
        """recursive=True descends into subdirectories."""
        await store.initialize()
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "deep.txt").write_text(RA_TEXT, encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        assert await pipeline.ingest_directory(tmp_path) == []
        assert len(await pipeline.ingest_directory(tmp_path, recursive=True)) == 1

    @pytest.mark.asyncio
    async def test_concurrent(self, tmp_path, store, embeddings, config, ra_llm):
        """Bounded concurrency converges to the same points as sequential."""
        await store.initialize()
        for i in range(5):
            (tmp_path / f"{i}.txt").write_text(RA_TEXT, encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        results = await pipeline.ingest_directory(tmp_path, concurrency=3)

        assert len(results) == 5
        assert all(r.ok for r in results)
        assert len(store.points) == 5

    @pytest.mark.asyncio
    async def test_not_a_directory(self, tmp_path, store, embeddings, config, ra_llm):
        """A file path raises ValueError."""
        path = tmp_path / "x.txt"
        path.write_text("x", encoding="utf-8")
        pipeline = IngestionPipeline(store, ra_llm, embeddings, config)

        with pytest.raises(ValueError):
            await pipeline.ingest_directory(path)
