"""Core migration functionality."""

from .auth import GraphAuth
from .client import GraphClient
from .errors import TransportError, ValidationError
from .pipeline import PipelineDriver, PipelineState, PolicyResult, RunSummary
from .staging import ExportStager, ImportOutcome, ImportStager, StagedFile, validate_json
from .transform import PolicyTransform, clean_for_creation

__all__ = [
    "ExportStager",
    "GraphAuth",
    "GraphClient",
    "ImportOutcome",
    "ImportStager",
    "PipelineDriver",
    "PipelineState",
    "PolicyResult",
    "PolicyTransform",
    "RunSummary",
    "StagedFile",
    "TransportError",
    "ValidationError",
    "clean_for_creation",
    "validate_json",
]
