"""Average word vectors into one vector per document."""

import logging
from typing import Iterable

import numpy as np

from ..config import VECTORIZE_SOURCES
from ..errors import MissingDocumentVectorError
from ..models import MISSING, Document, DocumentVectors, EmbeddingTable, Missing
from ..text.vocabulary import tokenize

logger = logging.getLogger(__name__)


def _document_tokens(document: Document, source: str) -> list[str] | tuple[str, ...]:
    if source == "cleaned":
        return document.tokens
    if source == "raw":
        # Re-tokenizing raw text: tokens keep their case, so capitalized words miss
        return tokenize(document.text)
    raise ValueError(f"source must be one of {VECTORIZE_SOURCES}, got {source!r}")


def vectorize(document: Document, embedding_table: EmbeddingTable, source: str = "cleaned") -> np.ndarray | Missing:
    """Mean of the embedding rows of the document's in-vocabulary tokens.

    Returns ``MISSING`` when no token has an embedding row.
    """
    found = [row for row in map(embedding_table.lookup, _document_tokens(document, source)) if row is not None]
    if not found:
        return MISSING
    return np.mean(found, axis=0)


def vectorize_corpus(
    documents: Iterable[Document],
    embedding_table: EmbeddingTable,
    source: str = "cleaned",
    strict: bool = False,
) -> DocumentVectors:
    """Vectorize every document, excluding (and listing) those without a vector.

    Args:
        documents: Cleaned documents.
        embedding_table: Trained embeddings.
        source: ``"cleaned"`` to use the cleaned tokens, ``"raw"`` to
            re-tokenize the raw text.
        strict: Raise on the first missing document instead of excluding it.

    Raises:
        MissingDocumentVectorError: in strict mode only.
    """
    doc_ids, rows, missing = [], [], []
    for doc in documents:
        vec = vectorize(doc, embedding_table, source=source)
        if vec is MISSING:
            if strict:
                raise MissingDocumentVectorError(doc.doc_id)
            missing.append(doc.doc_id)
            continue
        doc_ids.append(doc.doc_id)
        rows.append(vec)

    if missing:
        preview = ", ".join(missing[:5]) + (", ..." if len(missing) > 5 else "")
        logger.warning(f"{len(missing)} document(s) have no in-vocabulary tokens and are excluded: {preview}")

    matrix = np.vstack(rows) if rows else np.empty((0, embedding_table.dim))
    return DocumentVectors(doc_ids=tuple(doc_ids), matrix=matrix, missing=tuple(missing))
