"""Default document cleaning: raw review text -> cleaned token sequence."""

import re
from typing import Any, Iterable

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from ..models import Document

_TAG_RE = re.compile(r"<[^>]+>")
# Anything that is not a letter: punctuation, digits and underscores
_NON_LETTER_RE = re.compile(r"(?:[^\w\s]|[\d_])+")


def clean_text(text: str, stopwords: Iterable[str] = ENGLISH_STOP_WORDS, min_length: int = 2) -> list[str]:
    """Strip markup, case-fold, drop numbers/punctuation and stopwords.

    Deterministic: the same string always yields the same tokens.
    """
    text = _TAG_RE.sub(" ", text or "")
    text = _NON_LETTER_RE.sub(" ", text.lower())
    stop = stopwords if isinstance(stopwords, (set, frozenset)) else frozenset(stopwords)
    return [t for t in text.split() if len(t) >= min_length and t not in stop]


def clean_documents(records: Iterable[Any]) -> list[Document]:
    """Build cleaned Documents.

    Each record is a raw string, a ``(text, label)`` pair or a mapping with
    ``text`` and optional ``id``/``label`` keys. Ids default to the position.
    """
    docs = []
    for i, record in enumerate(records):
        doc_id, label = str(i), None
        if isinstance(record, str):
            text = record
        elif isinstance(record, dict):
            text = record["text"]
            doc_id = str(record.get("id", doc_id))
            label = record.get("label")
        else:
            text, label = record
        docs.append(Document(doc_id=doc_id, text=text, tokens=tuple(clean_text(text)), label=label))
    return docs
