"""Custom exception hierarchy for the archive RAG engine."""

from __future__ import annotations


class ArchiveRAGError(Exception):
    """Base exception for all archive RAG errors."""

    code = "internal_error"
    status_code = 500


class ValidationError(ArchiveRAGError):
    """Empty or malformed request, rejected before routing."""

    code = "invalid_request"
    status_code = 400


class RetrievalError(ArchiveRAGError):
    """Embedding index unreachable or timed out."""

    code = "retrieval_unavailable"
    status_code = 503


class EmbeddingError(RetrievalError):
    """Error generating query embeddings."""


class GenerationError(ArchiveRAGError):
    """Text generation failed or timed out.

    Carries the routing decision, when one was made, so callers can still
    explain what retrieval found.
    """

    code = "generation_failed"
    status_code = 502

    def __init__(self, message: str, decision=None) -> None:
        super().__init__(message)
        self.decision = decision


class VerificationError(ArchiveRAGError):
    """A citation could not be resolved to a single article."""

    code = "verification_failed"


class EvalExampleError(ArchiveRAGError):
    """One example in an evaluation batch failed."""

    code = "eval_example_failed"


class JudgeError(EvalExampleError):
    """The LLM judge returned output that does not fit the rubric."""


class NotFoundError(ArchiveRAGError):
    """Requested record does not exist."""

    code = "not_found"
    status_code = 404


class ConfigurationError(ArchiveRAGError):
    """Error in system configuration."""
