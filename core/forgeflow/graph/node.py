"""
Node Protocol - the units of work in a flow and their per-run results.

A FlowNode carries only what the engine needs: an id, the handler key
(``node_type``), a category and its *unresolved* config. Labels, icons and form
fields belong to the canvas catalog and are never read here.

Nodes arrive either in the engine's own shape::

    {"id": "n1", "nodeType": "action_delay", "category": "action",
     "config": {"duration": 10}}

or in the canvas shape the editor saves, where everything lives under
``data``::

    {"id": "n1", "type": "custom",
     "data": {"label": "Wait", "category": "action", "nodeType": "action_delay",
              "config": {"duration": 10}}}
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field, model_validator


class NodeCategory(StrEnum):
    """Palette category of a node."""

    TRIGGER = "trigger"
    CONDITION = "condition"
    ACTION = "action"
    AI = "ai"
    LOOP = "loop"
    UTILITY = "utility"
    OUTPUT = "output"
    APPS = "apps"


class NodeType(StrEnum):
    """Built-in node kinds. Hosts may still register handlers for custom keys."""

    # Triggers
    TRIGGER_MANUAL = "trigger_manual"
    TRIGGER_SCHEDULE = "trigger_schedule"
    TRIGGER_WEBHOOK = "trigger_webhook"
    TRIGGER_FILE_WATCH = "trigger_file_watch"

    # Conditions
    CONDITION_IF = "condition_if"
    CONDITION_SWITCH = "condition_switch"

    # Actions
    ACTION_HTTP = "action_http"
    ACTION_DELAY = "action_delay"
    ACTION_FILE_READ = "action_file_read"
    ACTION_FILE_WRITE = "action_file_write"
    ACTION_FILE_DELETE = "action_file_delete"
    ACTION_FILE_COPY = "action_file_copy"
    ACTION_FILE_MOVE = "action_file_move"
    ACTION_SHELL = "action_shell"
    ACTION_NOTIFICATION = "action_notification"
    ACTION_SET_VARIABLE = "action_set_variable"
    ACTION_CLIPBOARD_WRITE = "action_clipboard_write"
    ACTION_OPEN_URL = "action_open_url"
    ACTION_JSON_PARSE = "action_json_parse"
    ACTION_JSON_STRINGIFY = "action_json_stringify"
    ACTION_TEMPLATE = "action_template"
    ACTION_REGEX = "action_regex"
    ACTION_MATH = "action_math"
    ACTION_LOG = "action_log"

    # AI
    AI_GENERATE = "ai_generate"
    AI_SUMMARIZE = "ai_summarize"
    AI_CLASSIFY = "ai_classify"
    AI_EXTRACT = "ai_extract"

    # Loops
    LOOP_FOREACH = "loop_foreach"
    LOOP_REPEAT = "loop_repeat"
    LOOP_WHILE = "loop_while"

    # Utilities
    UTIL_STRING = "util_string"
    UTIL_ARRAY = "util_array"
    UTIL_FIELD = "util_field"
    UTIL_MERGE = "util_merge"
    UTIL_GENERATE = "util_generate"

    # Outputs
    OUTPUT_FILE = "output_file"
    OUTPUT_HTTP = "output_http"
    OUTPUT_NOTIFICATION = "output_notification"


class FlowNode(BaseModel):
    """A node in a flow graph."""

    id: str
    node_type: str = Field(alias="nodeType", description="Handler key, e.g. 'action_http'")
    category: NodeCategory = NodeCategory.ACTION
    config: dict[str, Any] = Field(
        default_factory=dict,
        description="Unresolved configuration; string values may hold {{placeholders}}",
    )
    label: str = ""

    model_config = {"extra": "allow", "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _lift_canvas_data(cls, values: Any) -> Any:
        """Accept the editor's ``{id, type, data: {...}}`` node shape."""
        if not isinstance(values, dict) or not isinstance(values.get("data"), dict):
            return values
        if "nodeType" in values or "node_type" in values:
            return values

        data = values["data"]
        lifted = {k: v for k, v in values.items() if k != "data"}
        lifted["nodeType"] = data.get("nodeType") or values.get("type", "")
        for key in ("category", "label"):
            if key in data:
                lifted[key] = data[key]
        lifted["config"] = data.get("config") or {}
        return lifted

    @property
    def disabled(self) -> bool:
        """True only when the config carries an explicit ``disabled: true`` flag."""
        return self.config.get("disabled") is True

    @property
    def display_name(self) -> str:
        return self.label or self.id


class NodeStatus(StrEnum):
    """Lifecycle of one node within a run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class NodeResult(BaseModel):
    """Status, timing and output of one node in one run."""

    node_id: str
    status: NodeStatus = NodeStatus.PENDING
    started_at: datetime | None = None
    ended_at: datetime | None = None
    output: Any = None
    error: str | None = None

    @computed_field
    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds between start and end (0 while unfinished)."""
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds() * 1000

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            NodeStatus.SUCCESS,
            NodeStatus.ERROR,
            NodeStatus.SKIPPED,
            NodeStatus.CANCELLED,
        )
