"""Text cleaning, tokenizing and vocabulary construction."""

from .cleaner import clean_documents, clean_text
from .vocabulary import build_vocabulary, tokenize

__all__ = ["build_vocabulary", "clean_documents", "clean_text", "tokenize"]
