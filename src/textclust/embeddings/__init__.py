"""Co-occurrence statistics, GloVe training and document vectors."""

from .cooccurrence import build_cooccurrence
from .glove import GloVe, train_embeddings
from .vectorizer import vectorize, vectorize_corpus

__all__ = ["GloVe", "build_cooccurrence", "train_embeddings", "vectorize", "vectorize_corpus"]
