"""textclust - co-occurrence embeddings, document clustering and cluster evaluation."""

from .errors import (
    DegenerateClusterWarning,
    EmptyVocabularyError,
    InsufficientDataError,
    MissingDocumentVectorError,
    TextclustError,
)
from .models import (
    MISSING,
    PERIPHERY_LABEL,
    ClusterAssignment,
    Document,
    DocumentVectors,
    EmbeddingTable,
    PipelineResult,
    StabilityResult,
    Vocabulary,
)
from .pipeline import run_pipeline

__version__ = "0.1.0"

__all__ = [
    "MISSING",
    "PERIPHERY_LABEL",
    "ClusterAssignment",
    "DegenerateClusterWarning",
    "Document",
    "DocumentVectors",
    "EmbeddingTable",
    "EmptyVocabularyError",
    "InsufficientDataError",
    "MissingDocumentVectorError",
    "PipelineResult",
    "StabilityResult",
    "TextclustError",
    "Vocabulary",
    "run_pipeline",
]
