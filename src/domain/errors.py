from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error the artifact pipeline raises on purpose."""

    kind = "pipeline_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(PipelineError):
    """Client fault: missing field, unknown provider, unsupported option."""

    kind = "validation_error"


class ImageError(PipelineError):
    """Client fault: the payload is not a decodable image or is too large."""

    kind = "image_error"


class NotFoundError(PipelineError):
    """The artifact never existed or its TTL has elapsed."""

    kind = "not_found"

    def __init__(self, namespace: str, artifact_id: str) -> None:
        self.namespace = namespace
        self.artifact_id = artifact_id
        super().__init__(f"{namespace.capitalize()} with id '{artifact_id}' not found")


class ProviderError(PipelineError):
    """Service fault raised by an analysis or generation backend."""

    kind = "provider_error"

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class MalformedAnalysisError(PipelineError):
    """The provider answered, but without the mandatory regions list."""

    kind = "malformed_analysis"


class StorageError(PipelineError):
    """Connectivity or serialization failure in the key/value layer."""

    kind = "storage_error"
