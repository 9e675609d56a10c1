"""
Node Assembler

Turns extractor output into store points: computes the two vectors of every
node and upserts it.

Vector texts:
    entity    primary = eid     secondary = category
    relation  primary = name    secondary = rid

The two embeddings are independent calls, since the two spaces encode
different semantics (identity vs. context).

Write order:
    1. Entities
    2. Relations (reference entity eids; not enforced by the store)

Points are written one at a time. A node that fails to embed or upsert is
recorded in AssemblyResult.failures and the rest of the batch continues;
upserts are last-write-wins, so re-running ingestion repairs a partial batch.
"""

import asyncio
import logging

from tom_kg.providers.base import EmbeddingProvider
from tom_kg.storage.base import VectorStore
from tom_kg.types import (
    AssemblyResult,
    Category,
    Entity,
    ExtractedEntity,
    ExtractedRelation,
    NamedVectors,
    Node,
    NodeFailure,
    Relation,
)

logger = logging.getLogger(__name__)


class Assembler:
    """
    Embeds extracted nodes and writes them to the store.

    Usage:
        assembler = Assembler(store, embedding_provider)
        result = await assembler.assemble(entities, relations)
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_provider: EmbeddingProvider,
    ):
        self.store = store
        self.embeddings = embedding_provider

    async def assemble(
        self,
        entities: list[ExtractedEntity],
        relations: list[ExtractedRelation] | None = None,
    ) -> AssemblyResult:
        """
        Embed and upsert entities, then relations.

        Args:
            entities: Extracted entities to write
            relations: Extracted relations to write (endpoints should be in `entities`)

        Returns:
            AssemblyResult with the ids written and per-node failures
        """
        result = AssemblyResult()

        for extracted in entities:
            try:
                entity = await self.build_entity(extracted)
                await self._write(entity)
            except Exception as e:
                logger.warning(f"Failed to write entity {extracted.eid!r}: {e}")
                result.failures.append(
                    NodeFailure(point_id=extracted.eid, kind="entity", error=str(e))
                )
            else:
                result.entity_ids.append(entity.eid)

        for extracted_relation in relations or []:
            try:
                relation = await self.build_relation(extracted_relation)
                await self._write(relation)
            except Exception as e:
                logger.warning(f"Failed to write relation {extracted_relation.rid!r}: {e}")
                result.failures.append(
                    NodeFailure(point_id=extracted_relation.rid, kind="relation", error=str(e))
                )
            else:
                result.relation_ids.append(relation.rid)

        if result.failures:
            logger.warning(
                f"Assembly wrote entities={len(result.entity_ids)}, "
                f"relations={len(result.relation_ids)}, failed={len(result.failures)}"
            )
        return result

    async def build_entity(self, extracted: ExtractedEntity) -> Entity:
        """Build an Entity point with primary = embed(eid), secondary = embed(category)."""
        category = Category(extracted.category)
        vectors = await self._embed_pair(extracted.eid, category.value)
        return Entity(
            eid=extracted.eid,
            category=category,
            importance=extracted.importance,
            vectors=vectors,
        )

    async def build_relation(self, extracted: ExtractedRelation) -> Relation:
        """Build a Relation point with primary = embed(name), secondary = embed(rid)."""
        relation = Relation.from_triple(extracted.name, extracted.source, extracted.target)
        relation.vectors = await self._embed_pair(relation.name, relation.rid)
        return relation

    async def _embed_pair(self, primary_text: str, secondary_text: str) -> NamedVectors:
        primary, secondary = await asyncio.gather(
            self.embeddings.embed_single(primary_text),
            self.embeddings.embed_single(secondary_text),
        )
        return NamedVectors(primary=primary, secondary=secondary)

    async def _write(self, node: Node) -> None:
        await self.store.upsert([node])
