"""
Shared fixtures: an in-memory VectorStore and deterministic providers.

InMemoryStore evaluates filters with Filter.matches and pages scrolls with
an integer cursor, so query and ingestion tests run without LanceDB or
network access.
"""

import hashlib
import math
from collections.abc import Sequence
from typing import Any

import pytest

from tom_kg.config import TomConfig
from tom_kg.errors import StoreUnavailable
from tom_kg.providers.base import EmbeddingProvider, LLMProvider
from tom_kg.storage.base import VectorStore
from tom_kg.storage.filters import Filter
from tom_kg.types import (
    Category,
    CandidateEntity,
    CandidateRelation,
    Entity,
    EntityExtraction,
    NamedVectors,
    Node,
    Relation,
    RelationExtraction,
    ScoredNode,
    ScrollPage,
)

DIMENSIONS = 8


def fake_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Deterministic unit vector derived from the text's hash."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = [(digest[i % len(digest)] / 255.0) - 0.5 for i in range(dimensions)]
    norm = math.sqrt(sum(x * x for x in raw)) or 1.0
    return [x / norm for x in raw]


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryStore(VectorStore):
    """Dict-backed VectorStore for tests."""

    def __init__(self, dimensions: int = DIMENSIONS, collection_name: str = "tom") -> None:
        self._dimensions = dimensions
        self._collection_name = collection_name
        self.points: dict[str, Node] | None = None
        self.initialized = False
        self.scroll_calls = 0
        self.retrieve_calls: list[list[str]] = []
        self.fail_upsert_ids: set[str] = set()

    @property
    def collection_name(self) -> str:
        return self._collection_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def initialize(self) -> None:
        self.initialized = True
        if self.points is None:
            self.points = {}

    async def close(self) -> None:
        self.initialized = False

    def _require(self) -> dict[str, Node]:
        if not self.initialized:
            raise StoreUnavailable("store not initialized")
        if self.points is None:
            self.points = {}
        return self.points

    async def collection_exists(self) -> bool:
        self._require()
        return self.points is not None

    async def drop_collection(self) -> None:
        self._require()
        self.points = None

    async def count(self, filter: Filter | None = None) -> int:
        points = self._require()
        return sum(1 for p in points.values() if self._matches(p, filter))

    async def upsert(self, nodes: Sequence[Node]) -> None:
        points = self._require()
        for node in nodes:
            if node.point_id in self.fail_upsert_ids:
                raise StoreUnavailable(f"upsert of {node.point_id!r} failed")
            if node.vectors is None or node.vectors.dimensions != self._dimensions:
                raise ValueError(f"Point {node.point_id!r} has wrong vectors")
            points[node.point_id] = node

    async def retrieve(self, ids: Sequence[str], *, with_vectors: bool = False) -> list[Node]:
        points = self._require()
        self.retrieve_calls.append(list(ids))
        return [
            self._strip(points[i], with_vectors) for i in dict.fromkeys(ids) if i in points
        ]

    async def scroll(
        self,
        filter: Filter | None = None,
        *,
        limit: int = 100,
        offset: int | str | None = None,
        with_vectors: bool = False,
    ) -> ScrollPage:
        points = self._require()
        self.scroll_calls += 1
        start = int(offset or 0)
        matching = [p for p in points.values() if self._matches(p, filter)]
        page = matching[start:start + limit]
        next_offset = start + limit if start + limit < len(matching) else None
        return ScrollPage(
            points=[self._strip(p, with_vectors) for p in page],
            next_offset=next_offset,
        )

    async def search(
        self,
        vector_name: str,
        vector: Sequence[float],
        filter: Filter | None = None,
        *,
        limit: int = 5,
    ) -> list[ScoredNode]:
        points = self._require()
        scored = [
            ScoredNode(node=self._strip(p, False), score=_cosine(vector, p.vectors.get(vector_name)))
            for p in points.values()
            if p.vectors is not None and self._matches(p, filter)
        ]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]

    @staticmethod
    def _matches(node: Node, filter: Filter | None) -> bool:
        if filter is None:
            return True
        return filter.matches(node.model_dump(mode="json", exclude={"vectors"}))

    @staticmethod
    def _strip(node: Node, with_vectors: bool) -> Node:
        return node if with_vectors else node.model_copy(update={"vectors": None})


class FakeEmbeddingProvider(EmbeddingProvider):
    """Hash-based embeddings; records every text embedded."""

    def __init__(self, dimensions: int = DIMENSIONS) -> None:
        self._dimensions = dimensions
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise RuntimeError(f"embedding failed for {text!r}")
        return fake_vector(text, self._dimensions)


class FakeLLMProvider(LLMProvider):
    """
    Returns canned extraction output.

    `entities` and `relations` are what the model "proposes"; the same
    instance is returned by with_model so tier switches are observable.
    """

    def __init__(
        self,
        entities: list[CandidateEntity] | None = None,
        relations: list[CandidateRelation] | None = None,
        model: str = "gpt-4o",
    ) -> None:
        self.entities = entities or []
        self.relations = relations or []
        self._model = model
        self.prompts: list[tuple[str, str]] = []
        self.models_used: list[str] = []

    @property
    def model_name(self) -> str:
        return self._model

    def with_model(self, model: str) -> "FakeLLMProvider":
        self._model = model
        return self

    async def generate_structured(self, prompt: str, schema: type, *, system: str | None = None) -> Any:
        self.prompts.append((schema.__name__, prompt))
        self.models_used.append(self._model)
        if schema is EntityExtraction:
            return EntityExtraction(entities=list(self.entities))
        if schema is RelationExtraction:
            return RelationExtraction(relations=list(self.relations))
        raise AssertionError(f"unexpected schema {schema!r}")


def make_entity(eid: str, category: Category | str = Category.CONDITION, importance: float | None = None) -> Entity:
    cat = Category(category)
    return Entity(
        eid=eid,
        category=cat,
        importance=importance,
        vectors=NamedVectors(primary=fake_vector(eid), secondary=fake_vector(cat.value)),
    )


def make_relation(name: str, source: str, dest: str) -> Relation:
    relation = Relation.from_triple(name, source, dest)
    relation.vectors = NamedVectors(primary=fake_vector(relation.name), secondary=fake_vector(relation.rid))
    return relation


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def embeddings() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def config() -> TomConfig:
    return TomConfig(embedding_dimensions=DIMENSIONS, openai_api_key=None)


@pytest.fixture
def ra_llm() -> FakeLLMProvider:
    """LLM proposing a small rheumatoid arthritis graph."""
    return FakeLLMProvider(
        entities=[
            CandidateEntity(eid="Rheumatoid Arthritis", category="condition", importance=0.9),
            CandidateEntity(eid="methotrexate", category="medication", importance=0.8),
            CandidateEntity(eid="joint pain", category="symptom", importance=0.6),
            CandidateEntity(eid="the patient", category=None, importance=0.1),
        ],
        relations=[
            CandidateRelation(name="treats", source="methotrexate", target="rheumatoid arthritis"),
            CandidateRelation(name="Causes", source="rheumatoid arthritis", target="Joint Pain"),
            CandidateRelation(name="treats", source="methotrexate", target="the patient"),
        ],
    )
