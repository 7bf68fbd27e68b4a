"""
Workflow History — linear undo / redo over node snapshots.

State machine over the snapshot list ``H`` and cursor ``c``::

    initial   H = [()], c = 0, redo = []
    record    H = H[0..c] + [s], c = len(H) - 1, redo = []
    undo      c > 0:      redo = [H[c]] + redo, c = c - 1
    redo      redo != []: H = H[0..c] + [redo.pop(0)], c = c + 1

Only node sets are versioned; edge changes never create entries.
Snapshots are tuples of frozen ``Node`` models, so consecutive
entries share every node that did not change.
"""

from __future__ import annotations

from logging import getLogger
from typing import Iterable, List, Optional

from flowcanvas.workflow.workflow_model import Node, Snapshot

logger = getLogger(__name__)


class WorkflowHistory:
    """Append-only snapshot sequence with a cursor and a redo stack."""

    def __init__(self) -> None:
        self._entries: List[Snapshot] = [()]
        self._step = 0
        self._redo: List[Snapshot] = []

    # ── Queries ──

    @property
    def step(self) -> int:
        """Index of the active snapshot."""
        return self._step

    @property
    def entries(self) -> List[Snapshot]:
        return list(self._entries)

    @property
    def redo_stack(self) -> List[Snapshot]:
        return list(self._redo)

    @property
    def current(self) -> Snapshot:
        return self._entries[self._step]

    @property
    def can_undo(self) -> bool:
        return self._step > 0

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._entries)

    # ── Transitions ──

    def record(self, nodes: Iterable[Node]) -> Snapshot:
        """Append a snapshot after the cursor, dropping any redo branch."""
        snapshot: Snapshot = tuple(nodes)
        self._entries = self._entries[: self._step + 1]
        self._entries.append(snapshot)
        self._step = len(self._entries) - 1
        self._redo = []
        return snapshot

    def undo(self) -> Optional[Snapshot]:
        """Step back; returns the now-active snapshot or None at the floor."""
        if self._step == 0:
            return None
        self._redo.insert(0, self._entries[self._step])
        self._step -= 1
        logger.debug(f"Undo -> step {self._step}")
        return self._entries[self._step]

    def redo(self) -> Optional[Snapshot]:
        """Replay the head of the redo stack; None when it is empty."""
        if not self._redo:
            return None
        snapshot = self._redo.pop(0)
        self._entries = self._entries[: self._step + 1]
        self._entries.append(snapshot)
        self._step += 1
        logger.debug(f"Redo -> step {self._step}")
        return snapshot

    def reset(self) -> None:
        """Back to the initial single empty snapshot."""
        self._entries = [()]
        self._step = 0
        self._redo = []
