"""Data models passed between pipeline stages.

Every stage returns a new value object; nothing is mutated in place.
"""

from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
from scipy import sparse

PERIPHERY_LABEL = -1


def make_rng(rng: np.random.Generator | int | None = None) -> np.random.Generator:
    """Normalize a seed or generator into a ``numpy.random.Generator``."""
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def draw_seed(rng: np.random.Generator) -> int:
    """Draw an integer seed for estimators that take ``random_state``."""
    return int(rng.integers(0, 2**31 - 1))


def _frozen(array: Any, dtype=None) -> np.ndarray:
    out = np.array(array, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


class Missing:
    """Sentinel for a document that has no vector."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = Missing()


@dataclass(frozen=True)
class Document:
    """A corpus document: raw text plus its cleaned token sequence."""
    doc_id: str
    text: str
    tokens: tuple[str, ...] = ()
    label: Any = None


@dataclass(frozen=True)
class Vocabulary:
    """Pruned vocabulary with dense ids 0..V-1."""
    terms: tuple[str, ...]
    counts: tuple[int, ...]
    min_count: int = 5
    index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if len(self.terms) != len(self.counts):
            raise ValueError("terms and counts must have the same length")
        index = {term: i for i, term in enumerate(self.terms)}
        if len(index) != len(self.terms):
            raise ValueError("Vocabulary terms must be unique")
        object.__setattr__(self, "index", index)

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: str) -> bool:
        return term in self.index

    def id_of(self, term: str) -> int | None:
        return self.index.get(term)

    def count_of(self, term: str) -> int:
        i = self.index.get(term)
        return 0 if i is None else self.counts[i]


@dataclass(frozen=True, eq=False)
class EmbeddingTable:
    """Trained word vectors. Lookup is the only operation downstream."""
    terms: tuple[str, ...]
    vectors: np.ndarray
    converged: bool = True
    n_iter: int = 0
    loss_history: tuple[float, ...] = ()
    index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        vectors = _frozen(self.vectors, dtype=np.float64)
        if vectors.ndim != 2 or vectors.shape[0] != len(self.terms):
            raise ValueError(f"Expected a ({len(self.terms)}, D) matrix, got {vectors.shape}")
        object.__setattr__(self, "vectors", vectors)
        object.__setattr__(self, "index", {t: i for i, t in enumerate(self.terms)})

    @property
    def dim(self) -> int:
        return self.vectors.shape[1]

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: str) -> bool:
        return term in self.index

    def lookup(self, term: str) -> np.ndarray | None:
        i = self.index.get(term)
        return None if i is None else self.vectors[i]


@dataclass(frozen=True, eq=False)
class DocumentVectors:
    """Per-document vectors, aligned with ``doc_ids``. Missing docs are listed, not zero-filled."""
    doc_ids: tuple[str, ...]
    matrix: np.ndarray
    missing: tuple[str, ...] = ()

    def __post_init__(self):
        matrix = _frozen(self.matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != len(self.doc_ids):
            raise ValueError(f"Expected {len(self.doc_ids)} rows, got matrix of shape {matrix.shape}")
        object.__setattr__(self, "matrix", matrix)

    def __len__(self) -> int:
        return len(self.doc_ids)


@dataclass(frozen=True, eq=False)
class ClusterAssignment:
    """Labels for one (method, k) run. Derived variants are new objects."""
    method: str
    k: int
    doc_ids: tuple[str, ...]
    labels: np.ndarray
    converged: bool = True
    periphery: tuple[int, ...] = ()
    empty: tuple[int, ...] = ()
    details: dict[str, Any] = field(default_factory=dict, compare=False)
    parent: "ClusterAssignment | None" = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        labels = _frozen(self.labels, dtype=np.int64)
        if labels.ndim != 1 or labels.shape[0] != len(self.doc_ids):
            raise ValueError(f"Expected {len(self.doc_ids)} labels, got shape {labels.shape}")
        object.__setattr__(self, "labels", labels)
        object.__setattr__(self, "doc_ids", tuple(self.doc_ids))

    @property
    def name(self) -> str:
        return f"{self.method}/k={self.k}"

    def __len__(self) -> int:
        return len(self.doc_ids)

    def clusters(self) -> list[int]:
        return sorted(int(c) for c in np.unique(self.labels))

    def sizes(self) -> dict[int, int]:
        """Cluster sizes, including zero-size entries for empty clusters."""
        sizes = {c: 0 for c in range(self.k)}
        values, counts = np.unique(self.labels, return_counts=True)
        sizes.update({int(v): int(c) for v, c in zip(values, counts)})
        return sizes

    def members(self, label: int) -> list[str]:
        return [d for d, l in zip(self.doc_ids, self.labels) if l == label]

    def as_dict(self) -> dict[str, int]:
        return {d: int(l) for d, l in zip(self.doc_ids, self.labels)}

    def derive(self, **changes) -> "ClusterAssignment":
        """Build a new assignment from this one, keeping a link back to it."""
        changes.setdefault("parent", self)
        return replace(self, **changes)

    def reassign_periphery(self, fraction: float) -> "ClusterAssignment":
        from .clustering.periphery import reassign_periphery
        return reassign_periphery(self, fraction)


@dataclass(frozen=True, eq=False)
class StabilityResult:
    """Bootstrap Jaccard stability per reference cluster."""
    method: str
    k: int
    B: int
    clusters: tuple[int, ...]
    jaccard: np.ndarray
    dissolved: np.ndarray
    recovered: np.ndarray
    valid_resamples: np.ndarray
    failed_resamples: int = 0

    def __post_init__(self):
        for name in ("jaccard", "dissolved", "recovered", "valid_resamples"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    def mean(self) -> float:
        values = self.jaccard[~np.isnan(self.jaccard)]
        return float(values.mean()) if values.size else float("nan")

    def as_dict(self) -> dict[int, float]:
        return {c: float(j) for c, j in zip(self.clusters, self.jaccard)}


@dataclass(frozen=True)
class ConfigurationFailure:
    """A stage-local failure that invalidated one configuration."""
    stage: str
    configuration: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.configuration} failed at {self.stage}: {self.error}"


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """Everything one pipeline run produced."""
    documents: tuple[Document, ...]
    vocabulary: Vocabulary
    cooccurrence: sparse.csr_matrix
    embeddings: EmbeddingTable
    vectors: DocumentVectors
    assignments: dict[str, ClusterAssignment] = field(default_factory=dict)
    validity: dict[str, dict[str, float]] = field(default_factory=dict)
    stability: dict[str, StabilityResult] = field(default_factory=dict)
    failures: tuple[ConfigurationFailure, ...] = ()
