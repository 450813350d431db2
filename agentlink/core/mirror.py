"""Local in-memory copy of agent state."""
from __future__ import annotations

from typing import Any, Callable, Optional

from agentlink.core.models import StateOrigin

StateCallback = Callable[[Any, StateOrigin], None]


class StateMirror:
    """Hold the last known agent state and report every replacement."""

    def __init__(self, on_change: Optional[StateCallback] = None) -> None:
        self._state: Any = None
        self._on_change = on_change

    @property
    def state(self) -> Any:
        return self._state

    def apply(self, new_state: Any, origin: StateOrigin) -> None:
        """Replace the held value, then notify the callback synchronously."""
        self._state = new_state
        if self._on_change is not None:
            self._on_change(new_state, origin)
