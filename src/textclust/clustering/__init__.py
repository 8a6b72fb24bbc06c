"""Cluster engines and periphery handling."""

from .engines import ENGINES, gmm, kmeans, run_engine
from .periphery import periphery_clusters, reassign_periphery

__all__ = ["ENGINES", "gmm", "kmeans", "periphery_clusters", "reassign_periphery", "run_engine"]
