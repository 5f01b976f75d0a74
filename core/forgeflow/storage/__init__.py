"""Persistent storage for execution history."""

from forgeflow.storage.execution_store import ExecutionHistoryStore

__all__ = ["ExecutionHistoryStore"]
