# ABOUTME: Business logic and orchestration layer
# ABOUTME: Batch pipeline, record validation, degradation and the domain models

"""
Core Layer: Business logic and workflow orchestration

This layer handles:
- Domain models for entries, agent records and batch results
- The error taxonomy the pipeline dispatches on
- Batch orchestration with retries and partial-failure aggregation
- Record validation and degradation to minimal records

Data Flow: extraction/ records → Validation → BatchResult → persistence/
"""

from .errors import (
    ApiError,
    ErrorKind,
    FatalEntryError,
    HarvestError,
    MappingError,
    PolicyError,
    UnrecognizedValueError,
    ValidationError,
)
from .models import (
    AgentRecord,
    BatchResult,
    BatchStatistics,
    Entry,
    FailedEntry,
    Locale,
    PipelineOptions,
    ProcessingStage,
    ProgressInfo,
    ValidationResult,
)

# Import the pipeline on demand to avoid circular imports
# Use: from wiki_harvest.core.pipeline import BatchPipeline

__all__ = [
    "AgentRecord",
    "ApiError",
    "BatchResult",
    "BatchStatistics",
    "Entry",
    "ErrorKind",
    "FailedEntry",
    "FatalEntryError",
    "HarvestError",
    "Locale",
    "MappingError",
    "PipelineOptions",
    "PolicyError",
    "ProcessingStage",
    "ProgressInfo",
    "UnrecognizedValueError",
    "ValidationError",
    "ValidationResult",
]
