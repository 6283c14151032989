"""Pytest configuration and fixtures."""

import numpy as np
import pytest

pytest_plugins = ("pytest_asyncio",)

DIM = 8


def basis(i: int, dim: int = DIM) -> list[float]:
    v = [0.0] * dim
    v[i] = 1.0
    return v


class FakeEmbedder:
    """Deterministic embedder: each known keyword adds a fixed vector."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, dim: int = DIM):
        self._dim = dim
        self.vectors = vectors or {}
        self.calls = 0
        self.batches: list[int] = []

    @property
    def dim(self) -> int:
        return self._dim

    def _vector(self, text: str) -> np.ndarray:
        lowered = text.lower()
        v = np.zeros(self._dim, dtype=np.float64)
        for keyword, vector in self.vectors.items():
            if keyword in lowered:
                v += np.asarray(vector, dtype=np.float64)
        return v

    async def embed(self, text: str) -> np.ndarray:
        self.calls += 1
        return self._vector(text)

    async def embed_many(self, texts: list[str]) -> np.ndarray:
        self.calls += 1
        self.batches.append(len(texts))
        if not texts:
            return np.empty((0, self._dim), dtype=np.float64)
        return np.vstack([self._vector(t) for t in texts])


@pytest.fixture
def fake_embedder():
    """Embedder mapping Norwegian support keywords to orthogonal vectors."""
    return FakeEmbedder(
        {
            "eierskifte": basis(0),
            "mistet": basis(1),
            "savnet": basis(1),
            "chip": basis(2),
            "faktura": basis(3),
        }
    )


@pytest.fixture
def sample_intents():
    """Catalog with one missing embedding and one unapproved intent."""
    return [
        {
            "intent_id": "OwnershipTransfer",
            "category": "Eierskap",
            "subcategory": "Eierskifte",
            "description": "Overføre eierskap av dyr",
            "keywords": "eierskifte, ny eier, overføre",
            "actionable": True,
            "approved": True,
            "embedding": basis(0),
        },
        {
            "intent_id": "ReportLostPet",
            "category": "Savnet",
            "subcategory": None,
            "description": "Melde dyr savnet",
            "keywords": "savnet, mistet, borte",
            "actionable": True,
            "approved": True,
            "embedding": basis(1),
        },
        {
            "intent_id": "ChipLookup",
            "category": "ID-merking",
            "subcategory": None,
            "description": "Søk opp chipnummer",
            "keywords": "chip, chipnummer",
            "actionable": False,
            "approved": True,
            "embedding": None,
        },
        {
            "intent_id": "InvoiceQuestion",
            "category": "Betaling",
            "subcategory": None,
            "description": None,
            "keywords": "faktura",
            "actionable": False,
            "approved": False,
            "embedding": basis(3),
        },
    ]


@pytest.fixture
def make_embedder():
    """Factory for embedders with custom keyword vectors."""
    return FakeEmbedder


@pytest.fixture
def unit():
    """Basis vector helper."""
    return basis
