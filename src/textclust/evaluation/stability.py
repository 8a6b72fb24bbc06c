"""Bootstrap cluster stability (mean best-match Jaccard per cluster).

For each resample drawn with replacement, the clustering is refit and each
reference cluster is compared, over the resampled positions (duplicates
included), with every cluster of the refit; its score is the best Jaccard
similarity. A reference cluster absent from a resample is skipped for that
resample. Scores <= 0.5 count as dissolved, >= 0.75 as recovered.
"""

import logging
import warnings
from functools import partial
from typing import Any, Callable

import numpy as np
from joblib import Parallel, delayed

from ..clustering.engines import ENGINES, run_engine
from ..errors import DegenerateClusterWarning, InsufficientDataError
from ..models import ClusterAssignment, DocumentVectors, StabilityResult, draw_seed, make_rng
from .validity import aligned_matrix

logger = logging.getLogger(__name__)

DISSOLVED_AT = 0.5
RECOVERED_AT = 0.75

LabelFn = Callable[[np.ndarray, int, np.random.Generator], np.ndarray]


def jaccard(a: np.ndarray, b: np.ndarray) -> float:
    """Jaccard similarity of two boolean membership vectors."""
    union = np.logical_or(a, b).sum()
    if union == 0:
        return 0.0
    return float(np.logical_and(a, b).sum() / union)


def _engine_labels(method: str, engine_kwargs: dict[str, Any], X: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    return run_engine(method, X, k, rng=rng, **engine_kwargs).labels


def _resample_scores(
    X: np.ndarray,
    reference: np.ndarray,
    clusters: tuple[int, ...],
    fit: LabelFn,
    k: int,
    seed: int,
) -> np.ndarray | None:
    rng = np.random.default_rng(seed)
    idx = rng.integers(0, X.shape[0], size=X.shape[0])
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DegenerateClusterWarning)
        try:
            boot = np.asarray(fit(X[idx], k, rng))
        except InsufficientDataError:
            return None

    ref = reference[idx]
    boot_clusters = np.unique(boot)
    scores = np.full(len(clusters), np.nan)
    for pos, c in enumerate(clusters):
        member = ref == c
        if member.any():
            scores[pos] = max(jaccard(member, boot == b) for b in boot_clusters)
    return scores


def bootstrap_stability(
    vectors: DocumentVectors | np.ndarray,
    method: str | LabelFn,
    k: int,
    B: int = 100,
    rng: np.random.Generator | int | None = None,
    reference: ClusterAssignment | None = None,
    n_jobs: int = 1,
    **engine_kwargs: Any,
) -> StabilityResult:
    """Per-cluster bootstrap stability of a clustering method.

    Args:
        vectors: Document vectors (or a plain matrix).
        method: Engine name (``"kmeans"``, ``"gmm"``) or a callable
            ``(X, k, rng) -> labels``.
        k: Number of clusters to refit with.
        B: Number of resamples. Each GMM refit costs far more than a K-Means
            one, so callers typically pass a much smaller B for GMM.
        rng: Seed or generator; resample seeds are drawn up front so serial
            and parallel runs agree.
        reference: Assignment to score; fitted on the full data when omitted.
        n_jobs: joblib workers for the resamples.
        **engine_kwargs: Passed to the engine on every fit.
    """
    if B < 0:
        raise ValueError(f"B must be >= 0, got {B}")
    if callable(method):
        fit, name = method, getattr(method, "__name__", "custom")
    else:
        if method not in ENGINES:
            raise ValueError(f"Unknown clustering method: {method!r} (expected one of {sorted(ENGINES)})")
        fit, name = partial(_engine_labels, method, engine_kwargs), method

    rng = make_rng(rng)
    if reference is not None:
        X = aligned_matrix(vectors, reference)
        ref_labels = reference.labels
    else:
        X = vectors.matrix if isinstance(vectors, DocumentVectors) else np.asarray(vectors, dtype=np.float64)
        ref_labels = np.asarray(fit(X, k, make_rng(draw_seed(rng))))

    clusters = tuple(int(c) for c in np.unique(ref_labels))
    seeds = [draw_seed(rng) for _ in range(B)]

    if n_jobs == 1:
        results = [_resample_scores(X, ref_labels, clusters, fit, k, s) for s in seeds]
    else:
        results = Parallel(n_jobs=n_jobs)(
            delayed(_resample_scores)(X, ref_labels, clusters, fit, k, s) for s in seeds
        )

    valid = [r for r in results if r is not None]
    failed = len(results) - len(valid)
    if failed:
        logger.warning(f"{name}/k={k}: {failed} of {B} bootstrap refits failed and were skipped")

    scores = np.vstack(valid) if valid else np.empty((0, len(clusters)))
    present = ~np.isnan(scores)
    counts = present.sum(axis=0)
    totals = np.where(present, scores, 0.0).sum(axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        means = np.where(counts > 0, totals / np.maximum(counts, 1), np.nan)

    result = StabilityResult(
        method=name,
        k=k,
        B=B,
        clusters=clusters,
        jaccard=means,
        dissolved=(np.where(present, scores, np.inf) <= DISSOLVED_AT).sum(axis=0),
        recovered=(np.where(present, scores, -np.inf) >= RECOVERED_AT).sum(axis=0),
        valid_resamples=counts,
        failed_resamples=failed,
    )
    logger.info(f"{name}/k={k}: mean Jaccard {result.mean():.3f} over {len(valid)} resamples")
    return result
