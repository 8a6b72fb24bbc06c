"""Internal validity indices over a cluster assignment."""

import logging
from typing import Any

import numpy as np
from sklearn.metrics import davies_bouldin_score, silhouette_score

from ..clustering.periphery import reassign_periphery
from ..errors import InsufficientDataError
from ..models import ClusterAssignment, DocumentVectors, draw_seed, make_rng

logger = logging.getLogger(__name__)


def aligned_matrix(vectors: DocumentVectors | np.ndarray, assignment: ClusterAssignment) -> np.ndarray:
    """Rows of ``vectors`` in the order of ``assignment.doc_ids``."""
    if isinstance(vectors, DocumentVectors):
        X = vectors.matrix
        if vectors.doc_ids != assignment.doc_ids:
            position = {d: i for i, d in enumerate(vectors.doc_ids)}
            try:
                X = X[[position[d] for d in assignment.doc_ids]]
            except KeyError as e:
                raise ValueError(f"{assignment.name} references document {e} with no vector")
    else:
        X = np.asarray(vectors, dtype=np.float64)
    if X.ndim != 2 or X.shape[0] != len(assignment):
        raise ValueError(f"{assignment.name} has {len(assignment)} labels but got vectors of shape {X.shape}")
    return X


def _require_clusters(assignment: ClusterAssignment, index: str, upper: int | None = None) -> None:
    n_labels = np.unique(assignment.labels).size
    if n_labels < 2 or (upper is not None and n_labels > upper):
        raise InsufficientDataError(
            f"{index} is undefined for {n_labels} distinct label(s) over {len(assignment)} points",
            stage="validity",
            configuration=assignment.name,
        )


def db_index(
    vectors: DocumentVectors | np.ndarray,
    assignment: ClusterAssignment,
    periphery_fraction: float | None = None,
) -> float:
    """Davies-Bouldin index (lower is better).

    With ``periphery_fraction`` set, clusters smaller than that fraction of
    the mean cluster size are first merged into one catch-all cluster, which
    is then scored like any other.
    """
    if periphery_fraction:
        assignment = reassign_periphery(assignment, periphery_fraction)
    X = aligned_matrix(vectors, assignment)
    _require_clusters(assignment, "Davies-Bouldin index")
    return float(davies_bouldin_score(X, assignment.labels))


def silhouette(
    vectors: DocumentVectors | np.ndarray,
    assignment: ClusterAssignment,
    sample_size: int | None = None,
    rng: np.random.Generator | int | None = None,
) -> float:
    """Mean silhouette width in [-1, 1].

    ``sample_size`` scores a random subset, for corpora where the full
    pairwise distance matrix is too large.
    """
    X = aligned_matrix(vectors, assignment)
    _require_clusters(assignment, "Silhouette index", upper=len(assignment) - 1)
    if sample_size is not None and sample_size >= len(assignment):
        sample_size = None
    random_state = draw_seed(make_rng(rng)) if sample_size else None
    try:
        return float(silhouette_score(X, assignment.labels, sample_size=sample_size, random_state=random_state))
    except ValueError as e:
        # A subsample can hold fewer than two labels even when the assignment does not
        raise InsufficientDataError(
            f"Silhouette index is undefined on the sample of {sample_size} points: {e}",
            stage="validity",
            configuration=assignment.name,
        ) from e


def validity_report(
    vectors: DocumentVectors | np.ndarray,
    assignment: ClusterAssignment,
    periphery_fraction: float = 0.2,
    sample_size: int | None = None,
    rng: np.random.Generator | int | None = None,
) -> dict[str, Any]:
    """All validity indices for one assignment."""
    report: dict[str, Any] = {
        "davies_bouldin": db_index(vectors, assignment),
        "silhouette": silhouette(vectors, assignment, sample_size=sample_size, rng=rng),
    }
    try:
        report["davies_bouldin_periphery"] = db_index(vectors, assignment, periphery_fraction=periphery_fraction)
    except InsufficientDataError as e:
        logger.warning(f"Periphery-adjusted Davies-Bouldin skipped: {e}")
        report["davies_bouldin_periphery"] = float("nan")
    return report
