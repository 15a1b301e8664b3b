# ABOUTME: Cross-cutting utilities and shared infrastructure
# ABOUTME: Supporting services: logging configuration and structured logger helpers

"""
Utils Layer: Shared infrastructure and cross-cutting concerns

This layer provides:
- Logging configuration (loguru sinks, structlog front-end)
- Context-bound loggers for entries and pipeline runs

Data Flow: Supporting services for all other layers
"""

from . import logging

__all__ = [
    "logging",
]
