"""On-disk store for intermediate pipeline artifacts."""

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from scipy import sparse

from ..models import ClusterAssignment, DocumentVectors, EmbeddingTable, PipelineResult, Vocabulary

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return _jsonable(value.tolist())
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


class ArtifactStore:
    """Directory-backed store: csv for tables, npz for arrays, json for scores."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self.path.mkdir(parents=True, exist_ok=True)

    def save_vocabulary(self, vocabulary: Vocabulary) -> Path:
        out = self.path / "vocabulary.csv"
        pd.DataFrame({"term": vocabulary.terms, "count": vocabulary.counts}).to_csv(out, index_label="id")
        return out

    def load_vocabulary(self, min_count: int = 5) -> Vocabulary:
        frame = pd.read_csv(self.path / "vocabulary.csv", keep_default_na=False).sort_values("id")
        return Vocabulary(
            terms=tuple(frame["term"].astype(str)),
            counts=tuple(int(c) for c in frame["count"]),
            min_count=min_count,
        )

    def save_cooccurrence(self, matrix: sparse.spmatrix) -> Path:
        out = self.path / "cooccurrence.npz"
        sparse.save_npz(out, sparse.csr_matrix(matrix))
        return out

    def load_cooccurrence(self) -> sparse.csr_matrix:
        return sparse.load_npz(self.path / "cooccurrence.npz").tocsr()

    def save_embeddings(self, table: EmbeddingTable) -> Path:
        out = self.path / "embeddings.npz"
        np.savez(
            out,
            terms=np.array(table.terms, dtype=str),
            vectors=table.vectors,
            converged=np.array(table.converged),
            loss_history=np.array(table.loss_history, dtype=np.float64),
        )
        return out

    def load_embeddings(self) -> EmbeddingTable:
        with np.load(self.path / "embeddings.npz") as data:
            loss = tuple(float(x) for x in data["loss_history"])
            return EmbeddingTable(
                terms=tuple(str(t) for t in data["terms"]),
                vectors=data["vectors"],
                converged=bool(data["converged"]),
                n_iter=len(loss),
                loss_history=loss,
            )

    def save_vectors(self, vectors: DocumentVectors) -> Path:
        out = self.path / "vectors.npz"
        np.savez(
            out,
            doc_ids=np.array(vectors.doc_ids, dtype=str),
            matrix=vectors.matrix,
            missing=np.array(vectors.missing, dtype=str),
        )
        return out

    def load_vectors(self) -> DocumentVectors:
        with np.load(self.path / "vectors.npz") as data:
            return DocumentVectors(
                doc_ids=tuple(str(d) for d in data["doc_ids"]),
                matrix=data["matrix"],
                missing=tuple(str(d) for d in data["missing"]),
            )

    def save_assignments(self, assignments: dict[str, ClusterAssignment]) -> Path:
        """One column per configuration, indexed by document id."""
        out = self.path / "assignments.csv"
        columns = {name: pd.Series(a.labels, index=list(a.doc_ids)) for name, a in assignments.items()}
        frame = pd.DataFrame(columns)
        frame.index.name = "doc_id"
        frame.to_csv(out)
        return out

    def load_assignment_labels(self) -> pd.DataFrame:
        return pd.read_csv(self.path / "assignments.csv", index_col="doc_id", dtype={"doc_id": str})

    def save_scores(self, result: PipelineResult) -> Path:
        out = self.path / "scores.json"
        payload = {
            "validity": result.validity,
            "stability": {
                name: {
                    "B": s.B,
                    "jaccard": s.as_dict(),
                    "dissolved": dict(zip(s.clusters, s.dissolved)),
                    "recovered": dict(zip(s.clusters, s.recovered)),
                }
                for name, s in result.stability.items()
            },
            "assignments": {
                name: {"converged": a.converged, "periphery": a.periphery, "empty": a.empty, "details": a.details}
                for name, a in result.assignments.items()
            },
            "missing_documents": result.vectors.missing,
            "failures": [{"stage": f.stage, "configuration": f.configuration, "error": str(f.error)} for f in result.failures],
        }
        out.write_text(json.dumps(_jsonable(payload), indent=2))
        return out

    def save_result(self, result: PipelineResult) -> list[Path]:
        """Persist every artifact of a pipeline run."""
        paths = [
            self.save_vocabulary(result.vocabulary),
            self.save_cooccurrence(result.cooccurrence),
            self.save_embeddings(result.embeddings),
            self.save_vectors(result.vectors),
            self.save_assignments(result.assignments),
            self.save_scores(result),
        ]
        logger.info(f"Saved {len(paths)} artifacts to {self.path}")
        return paths
