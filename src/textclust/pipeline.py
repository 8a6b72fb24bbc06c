"""End-to-end pipeline: vocabulary -> embeddings -> document vectors -> clusters -> scores.

Corpus-level failures (an empty vocabulary, untrainable embeddings) abort the
run. Failures that only invalidate one (method, k) configuration are
recorded and the remaining configurations still run.
"""

import copy
import logging
from typing import Any, Iterable

import numpy as np

from .clustering.engines import run_engine
from .config import DEFAULT_CONFIG, _deep_merge, validate_config
from .embeddings.cooccurrence import build_cooccurrence
from .embeddings.glove import train_embeddings
from .embeddings.vectorizer import vectorize_corpus
from .errors import TextclustError
from .evaluation.stability import bootstrap_stability
from .evaluation.validity import validity_report
from .models import ClusterAssignment, ConfigurationFailure, Document, PipelineResult, draw_seed, make_rng
from .text.vocabulary import build_vocabulary

logger = logging.getLogger(__name__)

METHODS = ("kmeans", "gmm")


def resolve_config(config: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay a (possibly partial) config on the defaults and validate it."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    _deep_merge(cfg, copy.deepcopy(config or {}))
    validate_config(cfg)
    return cfg


def engine_options(cfg: dict[str, Any], method: str) -> dict[str, Any]:
    """Keyword arguments for one engine, taken from the config."""
    if method == "kmeans":
        return {
            "n_init": cfg["kmeans_restarts"],
            "max_iter": cfg["kmeans_max_iter"],
            "periphery_fraction": cfg["periphery_size_threshold"],
        }
    if method == "gmm":
        return {
            "covariance_types": tuple(cfg["gmm"]["covariance_types"]),
            "max_iter": cfg["gmm"]["max_iter"],
            "n_init": cfg["gmm"]["n_init"],
            "periphery_fraction": cfg["periphery_size_threshold"],
        }
    raise ValueError(f"Unknown clustering method: {method!r}")


def _failure(error: TextclustError, stage: str, configuration: str) -> ConfigurationFailure:
    error.stage = error.stage or stage
    error.configuration = error.configuration or configuration
    logger.error(f"{configuration}: {error}")
    return ConfigurationFailure(stage=stage, configuration=configuration, error=error)


def run_pipeline(
    documents: Iterable[Document],
    config: dict[str, Any] | None = None,
    rng: np.random.Generator | int | None = None,
) -> PipelineResult:
    """Run every stage over a cleaned corpus.

    Args:
        documents: Cleaned documents (see ``textclust.text.clean_documents``).
        config: Options overriding ``DEFAULT_CONFIG``.
        rng: Seed or generator; defaults to ``config["seed"]``.

    Raises:
        EmptyVocabularyError: if no term survives pruning.
        TextclustError: if embeddings cannot be trained.
    """
    cfg = resolve_config(config)
    documents = tuple(documents)
    rng = make_rng(cfg["seed"] if rng is None else rng)
    embedding_seed, cluster_seed = draw_seed(rng), draw_seed(rng)

    logger.info(f"Building vocabulary over {len(documents)} documents")
    vocabulary = build_vocabulary((doc.tokens for doc in documents), min_count=cfg["min_term_count"])

    cooccurrence = build_cooccurrence((doc.tokens for doc in documents), vocabulary, window=cfg["cooccurrence_window"])

    try:
        embeddings = train_embeddings(
            cooccurrence,
            rank=cfg["embedding_rank"],
            x_max=cfg["embedding_x_max"],
            n_iter=cfg["embedding_iterations"],
            vocabulary=vocabulary,
            rng=embedding_seed,
            **cfg["embedding"],
        )
    except (ValueError, FloatingPointError) as e:
        raise TextclustError(str(e), stage="embedding") from e

    vectors = vectorize_corpus(documents, embeddings, source=cfg["vectorize_from"])
    logger.info(f"Vectorized {len(vectors)} documents ({len(vectors.missing)} without in-vocabulary tokens)")

    assignments: dict[str, ClusterAssignment] = {}
    validity: dict[str, dict[str, float]] = {}
    stability = {}
    failures: list[ConfigurationFailure] = []

    for method_index, method in enumerate(METHODS):
        options = engine_options(cfg, method)
        budget = cfg["bootstrap_B"].get(method, 0)
        for k in cfg[f"{method}_k"]:
            name = f"{method}/k={k}"
            # Each configuration gets its own stream, independent of sibling order
            config_rng = np.random.default_rng([cluster_seed, method_index, k])

            try:
                assignment = run_engine(method, vectors, k, rng=config_rng, **options)
            except TextclustError as e:
                failures.append(_failure(e, "cluster", name))
                continue
            if not assignment.converged:
                logger.warning(f"{name}: convergence not confirmed; keeping the best iterate")
            assignments[name] = assignment

            try:
                validity[name] = validity_report(
                    vectors,
                    assignment,
                    periphery_fraction=cfg["periphery_size_threshold"],
                    sample_size=cfg["silhouette_sample_size"],
                    rng=config_rng,
                )
            except TextclustError as e:
                failures.append(_failure(e, "validity", name))

            if budget:
                try:
                    stability[name] = bootstrap_stability(
                        vectors,
                        method,
                        k,
                        B=budget,
                        rng=config_rng,
                        reference=assignment,
                        n_jobs=cfg["bootstrap_n_jobs"],
                        **options,
                    )
                except TextclustError as e:
                    failures.append(_failure(e, "stability", name))

    return PipelineResult(
        documents=documents,
        vocabulary=vocabulary,
        cooccurrence=cooccurrence,
        embeddings=embeddings,
        vectors=vectors,
        assignments=assignments,
        validity=validity,
        stability=stability,
        failures=tuple(failures),
    )
