"""Descriptive summaries of cluster assignments."""

from collections import Counter
from typing import Any, Iterable, Mapping

import pandas as pd
from sklearn.metrics import adjusted_rand_score

from ..models import ClusterAssignment, Document


def _labels_by_id(labels: Mapping[str, Any] | Iterable[Document]) -> dict[str, Any]:
    if isinstance(labels, Mapping):
        return dict(labels)
    return {doc.doc_id: doc.label for doc in labels}


def label_crosstab(
    assignment: ClusterAssignment,
    labels: Mapping[str, Any] | Iterable[Document],
    normalize: bool = False,
) -> pd.DataFrame:
    """Cluster x external-label counts (row shares with ``normalize``).

    Documents without an external label are left out.
    """
    by_id = _labels_by_id(labels)
    rows = [(int(c), by_id[d]) for d, c in zip(assignment.doc_ids, assignment.labels) if by_id.get(d) is not None]
    frame = pd.DataFrame(rows, columns=["cluster", "label"])
    table = pd.crosstab(frame["cluster"], frame["label"], normalize="index" if normalize else False)
    table.columns.name = "label"
    return table


def top_terms(
    assignment: ClusterAssignment,
    documents: Iterable[Document],
    n: int = 10,
) -> dict[int, list[tuple[str, int]]]:
    """Most frequent cleaned tokens in each cluster."""
    tokens = {doc.doc_id: doc.tokens for doc in documents}
    counters: dict[int, Counter] = {c: Counter() for c in assignment.clusters()}
    for doc_id, label in zip(assignment.doc_ids, assignment.labels):
        counters[int(label)].update(tokens.get(doc_id, ()))
    # Counter.most_common keeps first-seen order on ties, so sort explicitly
    return {
        c: sorted(counter.items(), key=lambda tc: (-tc[1], tc[0]))[:n]
        for c, counter in counters.items()
    }


def cluster_summary(
    assignment: ClusterAssignment,
    documents: Iterable[Document],
    n: int = 10,
) -> pd.DataFrame:
    """One row per cluster: size, share of documents, periphery flag, top terms."""
    documents = list(documents)
    terms = top_terms(assignment, documents, n=n)
    sizes = assignment.sizes()
    total = max(len(assignment), 1)
    frame = pd.DataFrame(
        [{
            "cluster": c,
            "size": sizes[c],
            "share": sizes[c] / total,
            "periphery": c in assignment.periphery,
            "top_terms": " ".join(t for t, _ in terms.get(c, [])),
        }
        for c in sorted(sizes)]
    )
    return frame.set_index("cluster")


def compare_assignments(a: ClusterAssignment, b: ClusterAssignment) -> float:
    """Adjusted Rand index between two assignments over their shared documents."""
    b_labels = b.as_dict()
    shared = [(int(label), b_labels[d]) for d, label in zip(a.doc_ids, a.labels) if d in b_labels]
    if not shared:
        raise ValueError(f"{a.name} and {b.name} share no documents")
    left, right = zip(*shared)
    return float(adjusted_rand_score(left, right))
