"""
Ingestion Pipeline

Turns raw text into entity and relation points.

Pipeline flow (ingest_text):
    1. Entity extraction (structured LLM pass, closed category set)
    2. Importance pruning (entities below min_importance are not written)
    3. Entity assembly (two embeddings per entity, upsert)
    4. Relation extraction (second LLM pass over the kept entities)
    5. Relation assembly (two embeddings per relation, upsert)

ingest_directory runs ingest_text over every file with the configured
extension and reports each file separately, so one bad file does not stop
the walk and already-ingested files are kept.
"""

import asyncio
import logging
import time
from pathlib import Path

from tom_kg.config import TomConfig
from tom_kg.ingestion.assembly import Assembler
from tom_kg.ingestion.extraction import extract_entities, extract_relations
from tom_kg.providers.base import EmbeddingProvider, LLMProvider
from tom_kg.storage.base import VectorStore
from tom_kg.types import FileIngestResult, IngestResult

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Extracts, embeds and stores nodes from text.

    The store, LLM and embedding provider are passed in, so the same
    pipeline can run against test doubles.

    Args:
        store: Initialized store adapter
        llm: LLM provider for extraction
        embeddings: Embedding provider for both vector spaces
        config: Tier models, pruning threshold, concurrency
    """

    def __init__(
        self,
        store: VectorStore,
        llm: LLMProvider,
        embeddings: EmbeddingProvider,
        config: TomConfig | None = None,
    ) -> None:
        self.store = store
        self.llm = llm
        self.embeddings = embeddings
        self.config = config or TomConfig()
        self.assembler = Assembler(store, embeddings)

    async def ingest_text(
        self,
        text: str,
        *,
        tier: str | None = None,
        source: str | None = None,
    ) -> IngestResult:
        """
        Ingest one text.

        Re-ingesting the same text overwrites the same points (ids are
        derived from content), so the call is safe to repeat.

        Args:
            text: Free text to ingest
            tier: Extraction tier (defaults to config.default_tier)
            source: Label recorded on the result (e.g. file path)

        Returns:
            IngestResult with written ids and per-node failures

        Raises:
            ExtractionFailed: If either extraction pass fails
        """
        start_time = time.time()
        tier = tier or self.config.default_tier

        entities = await extract_entities(text, self.llm, tier=tier, config=self.config)

        kept = [e for e in entities if e.importance >= self.config.min_importance]
        pruned = [e.eid for e in entities if e.importance < self.config.min_importance]
        if pruned:
            logger.debug(f"Pruned {len(pruned)} entities below importance {self.config.min_importance}")

        result = await self.assembler.assemble(kept)

        relation_ids: list[str] = []
        if self.config.extract_relations and len(kept) > 1:
            # Only relate entities that actually made it into the store
            written = set(result.entity_ids)
            relations = await extract_relations(
                text,
                [e for e in kept if e.eid in written],
                self.llm,
                tier=tier,
                config=self.config,
            )
            relation_result = await self.assembler.assemble([], relations)
            relation_ids = relation_result.relation_ids
            result.failures.extend(relation_result.failures)

        ingest_result = IngestResult(
            source=source,
            entity_ids=result.entity_ids,
            relation_ids=relation_ids,
            pruned_entity_ids=pruned,
            failures=result.failures,
            duration_seconds=time.time() - start_time,
        )
        logger.info(
            f"Ingested {source or 'text'}: entities={len(ingest_result.entity_ids)}, "
            f"relations={len(ingest_result.relation_ids)}, "
            f"failures={len(ingest_result.failures)}"
        )
        return ingest_result

    async def ingest_directory(
        self,
        path: str | Path,
        ext: str | None = None,
        *,
        recursive: bool = False,
        concurrency: int | None = None,
        tier: str | None = None,
    ) -> list[FileIngestResult]:
        """
        Ingest every file with the given extension in a directory.

        Files are processed in sorted order, one at a time unless
        `concurrency` > 1. Each file gets its own FileIngestResult; a failure
        is recorded and the walk continues.

        Args:
            path: Directory path
            ext: File extension to pick up (default: config.ingest_file_extension)
            recursive: Whether to descend into subdirectories
            concurrency: Files in flight at once (default: config.ingest_concurrency)
            tier: Extraction tier for every file

        Returns:
            FileIngestResult per file, in sorted file order

        Raises:
            ValueError: If path is not a directory
        """
        path = Path(path)
        if not path.is_dir():
            raise ValueError(f"Not a directory: {path}")

        ext = ext or self.config.ingest_file_extension
        if not ext.startswith("."):
            ext = f".{ext}"
        pattern = f"**/*{ext}" if recursive else f"*{ext}"
        files = sorted(p for p in path.glob(pattern) if p.is_file())
        logger.info(f"Found {len(files)} '{ext}' files in {path}")

        async def ingest_one(file_path: Path) -> FileIngestResult:
            try:
                text = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
                result = await self.ingest_text(text, tier=tier, source=str(file_path))
            except Exception as e:
                logger.warning(f"Failed to ingest {file_path}: {e}")
                return FileIngestResult(file=str(file_path), ok=False, error=str(e))
            return FileIngestResult(
                file=str(file_path),
                ok=result.ok,
                error=None if result.ok else f"{len(result.failures)} nodes failed",
                result=result,
            )

        concurrency = concurrency or self.config.ingest_concurrency
        if concurrency <= 1:
            return [await ingest_one(f) for f in files]

        # Semaphore-limited concurrency; upserts are last-write-wins per id
        semaphore = asyncio.Semaphore(concurrency)

        async def ingest_with_semaphore(file_path: Path) -> FileIngestResult:
            async with semaphore:
                return await ingest_one(file_path)

        return list(await asyncio.gather(*(ingest_with_semaphore(f) for f in files)))
