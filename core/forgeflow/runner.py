"""
Flow Runner - run a flow and get an execution record back.

``WorkflowExecutor.execute()`` raises on failure; hosts that want a record of
every run (success or not) use ``run_flow`` instead, which captures the
outcome in a FlowExecution and optionally saves it to the history store.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from forgeflow.config import EngineConfig
from forgeflow.graph.edge import FlowGraph
from forgeflow.graph.errors import ExecutionCancelledError, ForgeFlowError
from forgeflow.graph.executor import WorkflowExecutor
from forgeflow.graph.node import NodeCategory
from forgeflow.handlers import build_default_registry
from forgeflow.handlers.registry import HandlerRegistry
from forgeflow.handlers.types import LogCallback
from forgeflow.llm.provider import LLMProvider
from forgeflow.runtime.cancellation import CancellationToken
from forgeflow.runtime.tracker import ProgressCallback
from forgeflow.schemas.execution import ExecutionStatus, FlowExecution
from forgeflow.storage.execution_store import ExecutionHistoryStore

logger = logging.getLogger(__name__)


def _uses_ai(graph: FlowGraph) -> bool:
    return any(n.category == NodeCategory.AI or n.node_type.startswith("ai_") for n in graph.nodes)


def build_registry_for(
    graph: FlowGraph, config: EngineConfig, llm: LLMProvider | None = None
) -> HandlerRegistry:
    """Default registry, with a LiteLLM provider only when the flow has AI nodes."""
    if llm is None and _uses_ai(graph):
        from forgeflow.llm.litellm import LiteLLMProvider

        llm = LiteLLMProvider(model=config.llm_model, api_key=config.llm_api_key)
    return build_default_registry(llm=llm, http_timeout=config.http_timeout)


async def run_flow(
    graph: FlowGraph | dict[str, Any],
    registry: HandlerRegistry | None = None,
    *,
    variables: dict[str, Any] | None = None,
    on_progress: ProgressCallback | None = None,
    on_log: LogCallback | None = None,
    config: EngineConfig | None = None,
    history: ExecutionHistoryStore | None = None,
    cancel_token: CancellationToken | None = None,
    llm: LLMProvider | None = None,
) -> FlowExecution:
    """
    Run a flow to completion and return its execution record.

    Never raises for run failures: the record's status is ``success``,
    ``error`` or ``cancelled`` and ``error`` carries the message.

    Args:
        graph: The flow, as a FlowGraph or saved-flow JSON
        registry: Handlers to use (built-in handlers when omitted)
        variables: Initial variables
        on_progress: Progress observer passed to the executor
        on_log: Log sink passed to the executor
        config: Engine settings (loaded from configuration when omitted)
        history: Store to save the record to
        cancel_token: Token the caller can cancel to abort the run
        llm: Provider for AI nodes when building the default registry

    Returns:
        The FlowExecution record
    """
    if isinstance(graph, dict):
        graph = FlowGraph.from_dict(graph)
    config = config or EngineConfig()
    if registry is None:
        registry = build_registry_for(graph, config, llm)

    executor = WorkflowExecutor(
        graph=graph,
        registry=registry,
        on_progress=on_progress,
        on_log=on_log,
        variables=variables,
        join_policy=config.join_policy,
        max_node_visits=config.max_node_visits,
        cancel_token=cancel_token,
    )

    started_at = datetime.now(UTC)
    status = ExecutionStatus.SUCCESS
    error: str | None = None
    try:
        await executor.execute()
    except ExecutionCancelledError as e:
        status = ExecutionStatus.CANCELLED
        error = str(e)
    except ForgeFlowError as e:
        status = ExecutionStatus.ERROR
        error = str(e)
    except Exception as e:
        logger.error(f"Unexpected error while running flow '{graph.id}': {e}", exc_info=True)
        status = ExecutionStatus.ERROR
        error = str(e)

    execution = FlowExecution.from_results(
        executor.results,
        status=status,
        flow_id=graph.id,
        flow_name=graph.name,
        started_at=started_at,
        error=error,
        execution_id=f"exec-{executor.run_id[:12]}",
    )

    if history is not None:
        await history.save(execution)

    return execution
