"""Interpretation of cluster assignments against labels and terms."""

from .summary import cluster_summary, compare_assignments, label_crosstab, top_terms

__all__ = ["cluster_summary", "compare_assignments", "label_crosstab", "top_terms"]
