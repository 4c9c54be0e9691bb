"""Workflow orchestration for fetching, mapping and persisting sheet rows."""

from .service import SyncOrchestrator

__all__ = ["SyncOrchestrator"]
