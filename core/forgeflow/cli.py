"""
Command-line interface for ForgeFlow.

Usage:
    forgeflow run flows/daily-report.json --var city=Paris
    forgeflow validate flows/daily-report.json
    forgeflow history ~/.forgeflow/executions --limit 10
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Any

from forgeflow.config import EngineConfig
from forgeflow.graph.edge import FlowGraph
from forgeflow.graph.node import NodeResult, NodeStatus
from forgeflow.handlers import build_default_registry
from forgeflow.observability import configure_logging
from forgeflow.runner import run_flow
from forgeflow.runtime.cancellation import CancellationToken
from forgeflow.schemas.execution import ExecutionStatus
from forgeflow.storage.execution_store import ExecutionHistoryStore

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

_STATUS_ICONS = {
    NodeStatus.SUCCESS: "✓",
    NodeStatus.ERROR: "✗",
    NodeStatus.SKIPPED: "⏭",
    NodeStatus.CANCELLED: "⏹",
    NodeStatus.RUNNING: "…",
    NodeStatus.PENDING: "·",
}


def load_flow(path: str | Path) -> FlowGraph:
    """Read a saved flow JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    graph = FlowGraph.from_dict(data)
    if not graph.id:
        graph.id = Path(path).stem
    return graph


def parse_var(text: str) -> tuple[str, Any]:
    """Parse ``name=value``; the value is JSON when it parses, else a string."""
    name, sep, raw = text.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got '{text}'")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return name.strip(), value


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register run, validate and history commands."""
    run_parser = subparsers.add_parser("run", help="Run a flow")
    run_parser.add_argument("flow", help="Path to the flow JSON file")
    run_parser.add_argument(
        "--var",
        dest="variables",
        action="append",
        type=parse_var,
        default=[],
        metavar="NAME=VALUE",
        help="Initial variable (repeatable; VALUE may be JSON)",
    )
    run_parser.add_argument("--history", help="Directory to save the execution record to")
    run_parser.add_argument(
        "--no-history", action="store_true", help="Do not save an execution record"
    )
    run_parser.add_argument("--json", action="store_true", help="Print the record as JSON")
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser("validate", help="Check a flow without running it")
    validate_parser.add_argument("flow", help="Path to the flow JSON file")
    validate_parser.set_defaults(func=cmd_validate)

    history_parser = subparsers.add_parser("history", help="List past executions")
    history_parser.add_argument("directory", nargs="?", help="Execution history directory")
    history_parser.add_argument("--limit", type=int, default=20, help="Maximum entries")
    history_parser.add_argument("--flow", dest="flow_id", help="Only executions of this flow")
    history_parser.add_argument("--show", metavar="ID", help="Print one execution in full")
    history_parser.add_argument("--delete", metavar="ID", help="Delete one execution")
    history_parser.set_defaults(func=cmd_history)


def _print_results(results: list[NodeResult] | list[Any]) -> None:
    for r in results:
        icon = _STATUS_ICONS.get(r.status, "?")
        line = f"  {icon} {r.node_id:<24} {r.status:<10} {r.duration_ms:8.1f}ms"
        if r.error:
            line += f"  {r.error}"
        print(line)


async def _run(args: argparse.Namespace, graph: FlowGraph, config: EngineConfig) -> int:
    token = CancellationToken()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
    except (NotImplementedError, RuntimeError):
        pass

    history = None
    if not args.no_history:
        history = ExecutionHistoryStore(args.history or config.history_dir)

    execution = await run_flow(
        graph,
        variables=dict(args.variables),
        config=config,
        history=history,
        cancel_token=token,
    )

    if args.json:
        print(execution.model_dump_json(indent=2))
    else:
        print(f"\n{execution.flow_name or execution.flow_id}: {execution.status}")
        _print_results(execution.results)
        if execution.error:
            print(f"\nError: {execution.error}")
        if history is not None:
            print(f"\nSaved execution {execution.id}")

    if execution.status == ExecutionStatus.SUCCESS:
        return EXIT_OK
    if execution.status == ExecutionStatus.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_FAILED


def cmd_run(args: argparse.Namespace) -> int:
    """Run a flow and print its results."""
    config = EngineConfig()
    configure_logging(
        level=args.log_level or config.log_level,
        format=args.log_format or config.log_format,
    )
    try:
        graph = load_flow(args.flow)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: could not load flow '{args.flow}': {e}", file=sys.stderr)
        return EXIT_FAILED

    return asyncio.run(_run(args, graph, config))


def cmd_validate(args: argparse.Namespace) -> int:
    """Report structural problems and node types without handlers."""
    try:
        graph = load_flow(args.flow)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: could not load flow '{args.flow}': {e}", file=sys.stderr)
        return EXIT_FAILED

    problems = graph.problems()
    missing = build_default_registry().missing_for(graph)

    print(f"Flow: {graph.name or graph.id} ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
    entry_ids = [n.id for n in graph.without_dangling_edges().entry_nodes()]
    print(f"Entry points: {', '.join(entry_ids) or 'none'}")

    for node_type in missing:
        print(f"  ⚠ No built-in handler for node type '{node_type}'")
    if problems:
        for problem in problems:
            print(f"  ✗ {problem}")
        return EXIT_FAILED

    print("  ✓ Flow is valid")
    return EXIT_OK


def cmd_history(args: argparse.Namespace) -> int:
    """List, show or delete stored executions."""
    store = ExecutionHistoryStore(args.directory or EngineConfig().history_dir)

    if args.delete:
        deleted = asyncio.run(store.delete(args.delete))
        print(f"Deleted {args.delete}" if deleted else f"Not found: {args.delete}")
        return EXIT_OK if deleted else EXIT_FAILED

    if args.show:
        execution = asyncio.run(store.load(args.show))
        if execution is None:
            print(f"Not found: {args.show}", file=sys.stderr)
            return EXIT_FAILED
        print(execution.model_dump_json(indent=2))
        return EXIT_OK

    executions = asyncio.run(store.list_executions(limit=args.limit, flow_id=args.flow_id))
    if not executions:
        print("No executions found")
        return EXIT_OK

    for e in executions:
        print(
            f"{e.id}  {e.started_at:%Y-%m-%d %H:%M:%S}  {e.status:<9}  "
            f"{e.flow_name or e.flow_id}  "
            f"({e.success_count}/{e.node_count} ok, {e.error_count} failed)"
        )
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="forgeflow",
        description="ForgeFlow - run visual automation workflows",
    )
    parser.add_argument("--log-level", help="Logging level (default from configuration)")
    parser.add_argument(
        "--log-format", choices=["auto", "json", "human"], help="Log output format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    register_commands(subparsers)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
