"""
Variable Store - the run-scoped environment nodes read from and write to.

Two kinds of entries:

- named variables, seeded by the caller or written by handlers
  (``action_set_variable``), plus one ``node_<id>`` entry per completed node
- the "last output" cell: a single field surfaced under the aliases
  ``lastOutput``, ``result``, ``response`` and ``output``. Reading or writing
  any alias goes through that one field, so it is always last-writer-wins.
"""

from collections.abc import Iterator, MutableMapping
from typing import Any

LAST_OUTPUT_ALIASES = ("lastOutput", "result", "response", "output")

NODE_KEY_PREFIX = "node_"


def node_key(node_id: str) -> str:
    """Variable name under which a node's own output is stored."""
    return f"{NODE_KEY_PREFIX}{node_id}"


class VariableStore(MutableMapping[str, Any]):
    """
    Mutable mapping of run-time values with an explicit last-output cell.

    Example:
        store = VariableStore({"user": {"name": "Ada"}})
        store.record_output("fetch", {"status": 200})
        store["node_fetch"]   # {"status": 200}
        store["output"]       # {"status": 200}
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._values: dict[str, Any] = {}
        self._has_last_output = False
        self.last_output: Any = None
        if initial:
            for key, value in initial.items():
                self[key] = value

    def __getitem__(self, key: str) -> Any:
        if key in LAST_OUTPUT_ALIASES:
            if not self._has_last_output:
                raise KeyError(key)
            return self.last_output
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key in LAST_OUTPUT_ALIASES:
            self.set_last_output(value)
            return
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        if key in LAST_OUTPUT_ALIASES:
            if not self._has_last_output:
                raise KeyError(key)
            self._has_last_output = False
            self.last_output = None
            return
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        yield from self._values
        if self._has_last_output:
            yield from LAST_OUTPUT_ALIASES

    def __len__(self) -> int:
        return len(self._values) + (len(LAST_OUTPUT_ALIASES) if self._has_last_output else 0)

    def __contains__(self, key: object) -> bool:
        if key in LAST_OUTPUT_ALIASES:
            return self._has_last_output
        return key in self._values

    def __repr__(self) -> str:
        return f"VariableStore({self.snapshot()!r})"

    def set_last_output(self, value: Any) -> None:
        self.last_output = value
        self._has_last_output = True

    def record_output(self, node_id: str, output: Any) -> None:
        """Store a completed node's output under its own key and every alias."""
        self._values[node_key(node_id)] = output
        self.set_last_output(output)

    def snapshot(self) -> dict[str, Any]:
        """Plain dict view (aliases included) used for interpolation and conditions."""
        return dict(self.items())
