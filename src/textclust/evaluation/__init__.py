"""Validity indices and resampling-based stability."""

from .stability import bootstrap_stability, jaccard
from .validity import db_index, silhouette, validity_report

__all__ = ["bootstrap_stability", "db_index", "jaccard", "silhouette", "validity_report"]
