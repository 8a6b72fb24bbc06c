"""Tokenizer and pruned vocabulary builder."""

import logging
import re
from collections import Counter
from typing import Iterable, Sequence

from ..errors import EmptyVocabularyError
from ..models import Vocabulary

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"\W+")


def tokenize(text: str) -> list[str]:
    """Split on runs of non-word characters. No case folding."""
    return [t for t in _SPLIT_RE.split(text) if t]


def build_vocabulary(docs: Iterable[str | Sequence[str]], min_count: int = 5) -> Vocabulary:
    """Count terms over the corpus and keep those seen at least ``min_count`` times.

    Args:
        docs: Cleaned documents, either as strings or token sequences.
        min_count: Minimum corpus-wide frequency for a term to be kept.

    Returns:
        Vocabulary with ids ordered by descending count, ties broken by the
        term itself, so ids never depend on input order.

    Raises:
        EmptyVocabularyError: if no term survives pruning.
    """
    if min_count < 1:
        raise ValueError(f"min_count must be >= 1, got {min_count}")

    counts: Counter[str] = Counter()
    for doc in docs:
        counts.update(tokenize(doc) if isinstance(doc, str) else doc)

    kept = sorted(((t, c) for t, c in counts.items() if c >= min_count), key=lambda tc: (-tc[1], tc[0]))
    if not kept:
        raise EmptyVocabularyError(
            f"No term reaches min_count={min_count} ({len(counts)} distinct terms in corpus)"
        )

    logger.info(f"Vocabulary: kept {len(kept)} of {len(counts)} terms (min_count={min_count})")
    terms, freqs = zip(*kept)
    return Vocabulary(terms=terms, counts=freqs, min_count=min_count)
