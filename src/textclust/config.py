"""Configuration management for textclust."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "seed": 42,
    "min_term_count": 5,
    "cooccurrence_window": 5,
    "embedding_rank": 50,
    "embedding_x_max": 10.0,
    "embedding_iterations": 20,
    "embedding": {
        "learning_rate": 0.15,
        "alpha": 0.75,
        "batch_size": 128,
        "convergence_tol": 0.001,
        "combine": "sum",
    },
    "vectorize_from": "cleaned",
    "kmeans_k": [5, 10],
    "kmeans_restarts": 25,
    "kmeans_max_iter": 30,
    "gmm_k": [5, 10],
    "gmm": {"covariance_types": ["spherical", "diag", "tied", "full"], "max_iter": 100, "n_init": 1},
    # Resamples per method
    "bootstrap_B": {"kmeans": 100, "gmm": 5},
    "bootstrap_n_jobs": 1,
    "periphery_size_threshold": 0.2,
    "silhouette_sample_size": None,
    "top_terms": 10,
    "artifacts_path": None,
    "log_level": "INFO",
}

VECTORIZE_SOURCES = ("cleaned", "raw")
COMBINE_MODES = ("sum", "mean", "main")
COVARIANCE_TYPES = ("spherical", "diag", "tied", "full")

_ENV_OVERRIDES = {
    "TEXTCLUST_SEED": ("seed", int),
    "TEXTCLUST_LOG_LEVEL": ("log_level", str),
    "TEXTCLUST_ARTIFACTS_PATH": ("artifacts_path", str),
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".textclust" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if config_path and not path.exists():
        raise ValueError(f"Config file not found: {path}")
    if path and path.exists():
        with open(path) as f:
            try:
                file_cfg = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in config file {path}: {e}")
        if not isinstance(file_cfg, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        _deep_merge(cfg, file_cfg)

    for env_name, (key, cast) in _ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            cfg[key] = cast(value)

    if cfg.get("artifacts_path"):
        cfg["artifacts_path"] = str(Path(cfg["artifacts_path"]).expanduser().resolve())

    validate_config(cfg)
    return cfg


def validate_config(cfg: dict[str, Any]) -> None:
    """Raise ValueError naming the first invalid option."""
    for key in ("min_term_count", "cooccurrence_window", "embedding_rank", "embedding_iterations",
                "kmeans_restarts", "kmeans_max_iter"):
        if not isinstance(cfg[key], int) or cfg[key] < 1:
            raise ValueError(f"{key} must be a positive integer, got {cfg[key]!r}")

    if cfg["embedding_x_max"] <= 0:
        raise ValueError(f"embedding_x_max must be positive, got {cfg['embedding_x_max']!r}")

    emb = cfg["embedding"]
    if emb["combine"] not in COMBINE_MODES:
        raise ValueError(f"embedding.combine must be one of {COMBINE_MODES}, got {emb['combine']!r}")
    if emb["batch_size"] < 1:
        raise ValueError(f"embedding.batch_size must be positive, got {emb['batch_size']!r}")

    if cfg["vectorize_from"] not in VECTORIZE_SOURCES:
        raise ValueError(f"vectorize_from must be one of {VECTORIZE_SOURCES}, got {cfg['vectorize_from']!r}")

    for key in ("kmeans_k", "gmm_k"):
        values = cfg[key]
        if isinstance(values, int):
            cfg[key] = values = [values]
        if not values or any(not isinstance(k, int) or k < 1 for k in values):
            raise ValueError(f"{key} must be a non-empty list of positive integers, got {values!r}")

    unknown = set(cfg["gmm"]["covariance_types"]) - set(COVARIANCE_TYPES)
    if unknown or not cfg["gmm"]["covariance_types"]:
        raise ValueError(f"gmm.covariance_types must be drawn from {COVARIANCE_TYPES}, got {cfg['gmm']['covariance_types']!r}")

    for method, budget in cfg["bootstrap_B"].items():
        if not isinstance(budget, int) or budget < 0:
            raise ValueError(f"bootstrap_B.{method} must be a non-negative integer, got {budget!r}")

    threshold = cfg["periphery_size_threshold"]
    if not 0 <= threshold < 1:
        raise ValueError(f"periphery_size_threshold must be in [0, 1), got {threshold!r}")


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
