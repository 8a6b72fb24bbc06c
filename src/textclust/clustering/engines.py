"""K-Means and Gaussian mixture clustering of document vectors."""

import logging
import warnings
from typing import Any, Callable, Sequence

import numpy as np
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning
from sklearn.mixture import GaussianMixture

from ..config import COVARIANCE_TYPES
from ..errors import DegenerateClusterWarning, InsufficientDataError
from ..models import ClusterAssignment, DocumentVectors, draw_seed, make_rng
from .periphery import periphery_clusters

logger = logging.getLogger(__name__)


def _prepare(
    vectors: DocumentVectors | np.ndarray,
    k: int,
    method: str,
    doc_ids: Sequence[str] | None,
) -> tuple[np.ndarray, tuple[str, ...]]:
    """Resolve the input matrix and ids, and check k against the data."""
    if isinstance(vectors, DocumentVectors):
        X, ids = vectors.matrix, vectors.doc_ids
    else:
        X = np.asarray(vectors, dtype=np.float64)
        ids = tuple(doc_ids) if doc_ids is not None else tuple(str(i) for i in range(len(X)))
    if X.ndim != 2:
        raise ValueError(f"Expected a 2D matrix of document vectors, got shape {X.shape}")
    if len(ids) != X.shape[0]:
        raise ValueError(f"Got {len(ids)} ids for {X.shape[0]} vectors")

    configuration = f"{method}/k={k}"
    if k < 1:
        raise InsufficientDataError(f"k must be >= 1, got {k}", stage="cluster", configuration=configuration)
    distinct = np.unique(X, axis=0).shape[0] if X.shape[0] else 0
    if k > distinct:
        raise InsufficientDataError(
            f"k={k} exceeds the {distinct} distinct input vectors",
            stage="cluster",
            configuration=configuration,
        )
    return X, tuple(ids)


def _sizes(labels: np.ndarray, k: int) -> dict[int, int]:
    return {c: int((labels == c).sum()) for c in range(k)}


def _empty_clusters(labels: np.ndarray, k: int) -> tuple[int, ...]:
    present = set(np.unique(labels).tolist())
    return tuple(c for c in range(k) if c not in present)


def _flag(assignment: ClusterAssignment) -> ClusterAssignment:
    if assignment.empty:
        warnings.warn(
            f"{assignment.name}: empty clusters {list(assignment.empty)}",
            DegenerateClusterWarning,
            stacklevel=3,
        )
    if assignment.periphery:
        sizes = assignment.sizes()
        warnings.warn(
            f"{assignment.name}: periphery clusters "
            + ", ".join(f"{c} (n={sizes[c]})" for c in assignment.periphery),
            DegenerateClusterWarning,
            stacklevel=3,
        )
    if not assignment.converged:
        logger.debug(f"{assignment.name}: convergence not confirmed within the iteration budget")
    return assignment


def kmeans(
    vectors: DocumentVectors | np.ndarray,
    k: int,
    n_init: int = 25,
    max_iter: int = 30,
    periphery_fraction: float = 0.2,
    rng: np.random.Generator | int | None = None,
    doc_ids: Sequence[str] | None = None,
) -> ClusterAssignment:
    """Lloyd's K-Means with random restarts, keeping the lowest-inertia run.

    Clusters smaller than ``periphery_fraction`` of the mean size are flagged,
    as for :func:`gmm`.
    """
    X, ids = _prepare(vectors, k, "kmeans", doc_ids)
    rng = make_rng(rng)

    model = KMeans(
        n_clusters=k,
        init="random",
        n_init=n_init,
        max_iter=max_iter,
        tol=0.0,
        algorithm="lloyd",
        random_state=draw_seed(rng),
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        labels = model.fit_predict(X)

    assignment = ClusterAssignment(
        method="kmeans",
        k=k,
        doc_ids=ids,
        labels=labels,
        converged=bool(model.n_iter_ < max_iter),
        periphery=periphery_clusters(_sizes(labels, k), periphery_fraction),
        empty=_empty_clusters(labels, k),
        details={"inertia": float(model.inertia_), "n_iter": int(model.n_iter_)},
    )
    return _flag(assignment)


def gmm(
    vectors: DocumentVectors | np.ndarray,
    k: int,
    covariance_types: Sequence[str] = COVARIANCE_TYPES,
    max_iter: int = 100,
    n_init: int = 1,
    periphery_fraction: float = 0.2,
    rng: np.random.Generator | int | None = None,
    doc_ids: Sequence[str] | None = None,
) -> ClusterAssignment:
    """Gaussian mixture with the covariance structure chosen by BIC.

    Each candidate structure is fit with EM; the lowest-BIC model wins and
    every point is hard-assigned to its most responsible component. Clusters
    smaller than ``periphery_fraction`` of the mean size are flagged.
    """
    X, ids = _prepare(vectors, k, "gmm", doc_ids)
    seed = draw_seed(make_rng(rng))

    best, best_type, bics = None, None, {}
    for covariance_type in covariance_types:
        model = GaussianMixture(
            n_components=k,
            covariance_type=covariance_type,
            max_iter=max_iter,
            n_init=n_init,
            random_state=seed,
        )
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            try:
                model.fit(X)
            except ValueError as e:
                logger.warning(f"gmm/k={k}: covariance_type={covariance_type} could not be fit: {e}")
                continue
        bics[covariance_type] = float(model.bic(X))
        if best is None or bics[covariance_type] < bics[best_type]:
            best, best_type = model, covariance_type

    if best is None:
        raise InsufficientDataError(
            "no covariance structure could be fit", stage="cluster", configuration=f"gmm/k={k}"
        )

    labels = best.predict(X)
    assignment = ClusterAssignment(
        method="gmm",
        k=k,
        doc_ids=ids,
        labels=labels,
        converged=bool(best.converged_),
        periphery=periphery_clusters(_sizes(labels, k), periphery_fraction),
        empty=_empty_clusters(labels, k),
        details={"covariance_type": best_type, "bic": bics, "n_iter": int(best.n_iter_)},
    )
    logger.info(f"gmm/k={k}: selected covariance_type={best_type} (BIC={bics[best_type]:.1f})")
    return _flag(assignment)


ENGINES: dict[str, Callable[..., ClusterAssignment]] = {"kmeans": kmeans, "gmm": gmm}


def run_engine(name: str, vectors: DocumentVectors | np.ndarray, k: int, **kwargs: Any) -> ClusterAssignment:
    """Dispatch to a registered engine by name."""
    engine = ENGINES.get(name)
    if engine is None:
        raise ValueError(f"Unknown clustering method: {name!r} (expected one of {sorted(ENGINES)})")
    return engine(vectors, k, **kwargs)
