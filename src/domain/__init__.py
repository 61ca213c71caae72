"""Domain layer: constants, errors and schemas."""

from .errors import ErrorCodes, PolicyRejectError
from .schemas import (
    ArtifactSet,
    GenerationConfig,
    GlyphsOption,
    ProcessResult,
    RunLog,
    StoredUpload,
)

__all__ = [
    "ErrorCodes",
    "PolicyRejectError",
    "ArtifactSet",
    "GenerationConfig",
    "GlyphsOption",
    "ProcessResult",
    "RunLog",
    "StoredUpload",
]
