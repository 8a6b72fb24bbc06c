"""Distance-weighted term co-occurrence matrix."""

import logging
from typing import Iterable, Sequence

import numpy as np
from scipy import sparse

from ..models import Vocabulary

logger = logging.getLogger(__name__)


def build_cooccurrence(
    token_sequences: Iterable[Sequence[str]],
    vocabulary: Vocabulary,
    window: int = 5,
) -> sparse.csr_matrix:
    """Build the symmetric V x V co-occurrence matrix.

    Offsets are document positions. Tokens outside the vocabulary keep their
    position but never pair as center or context. Each pair at offset d
    (1 <= d <= window) adds 1/d to both (i, j) and (j, i).
    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")

    rows: list[np.ndarray] = []
    cols: list[np.ndarray] = []
    weights: list[np.ndarray] = []

    for tokens in token_sequences:
        # -1 marks out-of-vocabulary positions
        ids = np.fromiter((vocabulary.index.get(t, -1) for t in tokens), dtype=np.int64)
        for offset in range(1, min(window, len(ids) - 1) + 1):
            center, context = ids[:-offset], ids[offset:]
            known = (center >= 0) & (context >= 0)
            if not known.any():
                continue
            center, context = center[known], context[known]
            w = np.full(center.shape[0], 1.0 / offset)
            rows.extend((center, context))
            cols.extend((context, center))
            weights.extend((w, w))

    v = len(vocabulary)
    if not rows:
        logger.warning("No co-occurring in-vocabulary pairs found; matrix is empty")
        return sparse.csr_matrix((v, v), dtype=np.float64)

    matrix = sparse.coo_matrix(
        (np.concatenate(weights), (np.concatenate(rows), np.concatenate(cols))),
        shape=(v, v),
        dtype=np.float64,
    ).tocsr()
    matrix.sum_duplicates()
    logger.info(f"Co-occurrence: {matrix.nnz} nonzero entries over {v} terms (window={window})")
    return matrix
