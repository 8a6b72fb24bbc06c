"""Corpus readers."""

from .corpus import READERS, documents_from_frame, load_corpus, read_table

__all__ = ["READERS", "documents_from_frame", "load_corpus", "read_table"]
