"""Error taxonomy for the clustering pipeline."""


class TextclustError(Exception):
    """Base error. Carries the stage and configuration that produced it."""

    def __init__(self, message: str, stage: str | None = None, configuration: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.configuration = configuration

    def __str__(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.configuration:
            context.append(f"config={self.configuration}")
        if context:
            return f"[{', '.join(context)}] {self.message}"
        return self.message


class EmptyVocabularyError(TextclustError):
    """No term survived frequency pruning. Aborts the whole run."""

    def __init__(self, message: str = "No term survived frequency pruning", **kwargs):
        kwargs.setdefault("stage", "vocabulary")
        super().__init__(message, **kwargs)


class InsufficientDataError(TextclustError):
    """Not enough distinct points for the requested configuration."""


class MissingDocumentVectorError(TextclustError):
    """A document has no in-vocabulary token and therefore no vector."""

    def __init__(self, doc_id: str, **kwargs):
        kwargs.setdefault("stage", "vectorize")
        super().__init__(f"Document {doc_id!r} has no in-vocabulary tokens", **kwargs)
        self.doc_id = doc_id


class DegenerateClusterWarning(UserWarning):
    """A cluster is empty or below the periphery size threshold."""
