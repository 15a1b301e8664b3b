# ABOUTME: Data extraction from the wiki API and mapping into agent records
# ABOUTME: Pipeline stages: fetch raw pages, normalize values, map to AgentRecord

"""
Extraction Layer: Get raw data from the wiki and turn it into records

This layer handles:
- Fetching entry pages from the HoyoLab wiki API
- Normalizing stringly-typed numbers and localized labels
- Mapping raw page payloads into AgentRecord instances

Data Flow: Wiki API → Raw payload → RecordMapper → AgentRecord
"""

from .base import ContentClient, OutputSink
from .mapper import RecordMapper
from .normalize import map_level_curve, normalize_scalar

__all__ = [
    "ContentClient",
    "OutputSink",
    "RecordMapper",
    "map_level_curve",
    "normalize_scalar",
]
