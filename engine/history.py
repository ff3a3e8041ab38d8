"""engine.history

Linear undo/redo over immutable states.
"""

from __future__ import annotations

from typing import Generic, List, TypeVar

T = TypeVar("T")


class HistoryStack(Generic[T]):
    def __init__(self, initial: T):
        self._states: List[T] = [initial]
        self._index = 0

    @property
    def current(self) -> T:
        return self._states[self._index]

    def push(self, state: T) -> T:
        """Append after the cursor; anything that was redoable is dropped."""
        del self._states[self._index + 1 :]
        self._states.append(state)
        self._index += 1
        return state

    def replace_current(self, state: T) -> T:
        self._states[self._index] = state
        return state

    def reset(self, state: T) -> T:
        self._states = [state]
        self._index = 0
        return state

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._states) - 1

    def undo(self) -> T:
        if self.can_undo:
            self._index -= 1
        return self.current

    def redo(self) -> T:
        if self.can_redo:
            self._index += 1
        return self.current

    def __len__(self) -> int:
        return len(self._states)

    @property
    def index(self) -> int:
        return self._index
