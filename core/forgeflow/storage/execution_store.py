"""
Execution History Store - one JSON file per flow run.

Layout::

    {base_path}/
      exec-1a2b3c4d5e6f.json
      exec-....json

No index file: listing scans the directory, so concurrent writers never
contend on shared state.
"""

import asyncio
import logging
import os
import re
import tempfile
from pathlib import Path

from forgeflow.schemas.execution import FlowExecution

logger = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_id(execution_id: str) -> str:
    if not execution_id or not _SAFE_ID_RE.match(execution_id) or execution_id.startswith("."):
        raise ValueError(f"Invalid execution ID: {execution_id!r}")
    return execution_id


class ExecutionHistoryStore:
    """File-backed execution history."""

    def __init__(self, base_path: Path | str):
        """
        Initialize the store.

        Args:
            base_path: Directory holding one ``{id}.json`` per execution
                (e.g., ~/.forgeflow/executions)
        """
        self.base_path = Path(base_path).expanduser()

    def get_path(self, execution_id: str) -> Path:
        return self.base_path / f"{_check_id(execution_id)}.json"

    async def save(self, execution: FlowExecution) -> Path:
        """
        Write an execution record, replacing any previous version.

        Uses temp file + rename so readers never see a partial file.
        """
        path = self.get_path(execution.id)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(execution.model_dump_json(indent=2))
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

        await asyncio.to_thread(_write)
        logger.debug(f"Saved execution {execution.id} to {path}")
        return path

    async def load(self, execution_id: str) -> FlowExecution | None:
        """
        Read one execution record.

        Returns:
            The record, or None if it does not exist
        """
        path = self.get_path(execution_id)

        def _read() -> FlowExecution | None:
            if not path.exists():
                return None
            return FlowExecution.model_validate_json(path.read_text(encoding="utf-8"))

        return await asyncio.to_thread(_read)

    async def list_executions(
        self,
        limit: int = 0,
        flow_id: str | None = None,
        include_results: bool = False,
    ) -> list[FlowExecution]:
        """
        List executions, most recent first.

        Args:
            limit: Maximum number to return (0 = all)
            flow_id: Only executions of this flow
            include_results: Keep per-node results (dropped by default)

        Returns:
            Records sorted by ``started_at`` descending. Unreadable files are
            skipped with a warning.
        """

        def _scan() -> list[FlowExecution]:
            executions: list[FlowExecution] = []
            if not self.base_path.exists():
                return executions

            for path in self.base_path.glob("*.json"):
                if path.name.startswith("."):
                    continue
                try:
                    execution = FlowExecution.model_validate_json(path.read_text(encoding="utf-8"))
                except Exception as e:
                    logger.warning(f"Failed to load {path}: {e}")
                    continue
                if flow_id and execution.flow_id != flow_id:
                    continue
                executions.append(execution if include_results else execution.summary())

            executions.sort(key=lambda e: e.started_at, reverse=True)
            return executions[:limit] if limit > 0 else executions

        return await asyncio.to_thread(_scan)

    async def delete(self, execution_id: str) -> bool:
        """
        Delete an execution record.

        Returns:
            True if deleted, False if not found
        """
        path = self.get_path(execution_id)

        def _delete() -> bool:
            if not path.exists():
                return False
            path.unlink()
            logger.info(f"Deleted execution {execution_id}")
            return True

        return await asyncio.to_thread(_delete)
