"""Corpus loading: a file of (text, optional label) records -> cleaned Documents."""

import logging
from pathlib import Path

import pandas as pd

from ..models import Document
from ..text.cleaner import clean_text

logger = logging.getLogger(__name__)


def _read_csv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path)


def _read_tsv(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, sep="\t")


def _read_json(path: Path) -> pd.DataFrame:
    return pd.read_json(path)


def _read_jsonl(path: Path) -> pd.DataFrame:
    return pd.read_json(path, lines=True)


def _read_lines(path: Path) -> pd.DataFrame:
    lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    return pd.DataFrame({"text": [line for line in lines if line.strip()]})


READERS = {
    ".csv": _read_csv,
    ".tsv": _read_tsv,
    ".json": _read_json,
    ".jsonl": _read_jsonl,
    ".ndjson": _read_jsonl,
    ".txt": _read_lines,
}


def read_table(path: str | Path) -> pd.DataFrame:
    """Read a corpus file into a DataFrame, dispatching on its suffix."""
    path = Path(path)
    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported corpus format {path.suffix!r} (expected one of {sorted(READERS)})")
    if not path.exists():
        raise FileNotFoundError(f"Corpus file not found: {path}")
    return reader(path)


def documents_from_frame(
    frame: pd.DataFrame,
    text_column: str = "review",
    label_column: str | None = "sentiment",
    id_column: str | None = None,
) -> list[Document]:
    """Clean each row's text into a Document.

    ``text_column`` falls back to a ``text`` column when absent. A missing
    label column is not an error: documents are then unlabeled.
    """
    if text_column not in frame.columns:
        if "text" not in frame.columns:
            raise ValueError(f"Text column {text_column!r} not found (columns: {list(frame.columns)})")
        text_column = "text"
    if id_column and id_column not in frame.columns:
        raise ValueError(f"Id column {id_column!r} not found (columns: {list(frame.columns)})")

    has_labels = bool(label_column) and label_column in frame.columns
    docs = []
    for position, record in enumerate(frame.to_dict("records")):
        text = record[text_column]
        text = "" if pd.isna(text) else str(text)
        label = record[label_column] if has_labels else None
        if label is not None and pd.isna(label):
            label = None
        doc_id = str(record[id_column]) if id_column else str(position)
        docs.append(Document(doc_id=doc_id, text=text, tokens=tuple(clean_text(text)), label=label))
    return docs


def load_corpus(
    path: str | Path,
    text_column: str = "review",
    label_column: str | None = "sentiment",
    id_column: str | None = None,
) -> list[Document]:
    """Load and clean a corpus file (csv, tsv, json, jsonl or one-document-per-line txt)."""
    frame = read_table(path)
    docs = documents_from_frame(frame, text_column=text_column, label_column=label_column, id_column=id_column)
    logger.info(f"Loaded {len(docs)} documents from {path}")
    return docs
