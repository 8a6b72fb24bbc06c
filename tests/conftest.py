"""Shared synthetic data for the test suite."""

import numpy as np
import pytest

from textclust.text.cleaner import clean_documents

GROUP_PREFIXES = ("zor", "vex", "kul")
SUFFIXES = ("ab", "ed", "ix", "om", "un", "ar", "el", "is", "ot", "uy")
NOISE_WORDS = ("blorp", "quiff", "drang", "mopsy", "trell")


def make_corpus(docs_per_group: int = 50, doc_length: int = 20, seed: int = 7) -> list[tuple[str, int]]:
    """Documents drawn from three disjoint 10-term vocabularies plus shared noise words."""
    rng = np.random.default_rng(seed)
    records = []
    for group, prefix in enumerate(GROUP_PREFIXES):
        vocab = [prefix + s for s in SUFFIXES]
        for _ in range(docs_per_group):
            words = list(rng.choice(vocab, size=doc_length)) + list(rng.choice(NOISE_WORDS, size=2))
            rng.shuffle(words)
            records.append((" ".join(words), group))
    return records


def make_blobs(centers, n_per_blob: int = 50, scale: float = 0.5, seed: int = 0):
    """Isotropic Gaussian blobs; returns (X, true_labels)."""
    rng = np.random.default_rng(seed)
    centers = np.asarray(centers, dtype=float)
    X = np.vstack([c + scale * rng.standard_normal((n_per_blob, centers.shape[1])) for c in centers])
    y = np.repeat(np.arange(len(centers)), n_per_blob)
    return X, y


@pytest.fixture
def corpus_records():
    return make_corpus()


@pytest.fixture
def corpus_documents(corpus_records):
    return clean_documents(corpus_records)


@pytest.fixture
def blobs():
    return make_blobs([[0, 0], [10, 10], [-10, 10]])
