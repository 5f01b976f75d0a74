"""Exceptions raised by the workflow engine."""


class ForgeFlowError(Exception):
    """Base class for every engine error."""


class GraphValidationError(ForgeFlowError):
    """The graph is structurally unusable; raised before any handler runs."""


class NoEntryPointError(GraphValidationError):
    """Every node has at least one incoming edge, so there is nowhere to start."""

    def __init__(self, message: str = "No trigger node found: every node has an incoming edge"):
        super().__init__(message)


class CycleDetectedError(GraphValidationError):
    """The graph contains a cycle, which the depth-first walk cannot terminate on."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cycle detected: {' -> '.join(cycle)}")


class HandlerExecutionError(ForgeFlowError):
    """
    A node handler raised.

    ``str(error)`` is the handler's own message so callers and traces see the
    original text; the original exception is available as ``__cause__``.
    """

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(message)


class ExecutionCancelledError(ForgeFlowError):
    """The run was aborted through its cancellation token."""

    def __init__(self, message: str = "Workflow execution cancelled"):
        super().__init__(message)


class ExpressionError(ForgeFlowError):
    """A condition expression could not be parsed or uses a forbidden construct."""


class HandlerDispatchWarning(UserWarning):
    """A node's type has no registered handler; the node runs as a no-op."""


class InterpolationMiss(UserWarning):
    """A ``{{placeholder}}`` could not be resolved and was left as literal text."""
