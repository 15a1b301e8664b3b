# ABOUTME: File persistence for entry lists and harvested records
# ABOUTME: Pipeline edges: entry list in, JSON records out

"""
Persistence Layer: Read inputs and save outputs

This layer handles:
- Loading the entry list a run works through
- Writing successful records as JSON through a TypeAdapter

Data Flow: entries file → core/ pipeline → records file
"""

from .entries import load_entries
from .sink import JsonFileSink

__all__ = [
    "JsonFileSink",
    "load_entries",
]
