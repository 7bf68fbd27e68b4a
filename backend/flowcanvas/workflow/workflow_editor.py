"""
Workflow Editor — the mutation engine for one editing session.

Owns the node/edge registry, the undo/redo history and the workflow
metadata. Every operation runs to completion synchronously; operations
on unknown ids are silent no-ops so stale UI references never raise.

Node-level changes (add, duplicate, relabel, lock, move, delete,
import, load) append a node snapshot to the history. Edge changes
and in-place payload edits (``update_node_data``) do not; their
effect is captured by the next snapshot.

Usage::

    editor = WorkflowEditor()
    prompt = editor.add_node(NodeType.TEXT_SOURCE)
    llm = editor.add_node(NodeType.LLM_INVOCATION)
    check = editor.connect(prompt.id, llm.id, target_handle="input-0")
    editor.undo()
"""

from __future__ import annotations

import random
import time
from logging import getLogger
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from flowcanvas.config import EditorConfig, get_editor_config
from flowcanvas.workflow import workflow_serializer
from flowcanvas.workflow.connection_validator import (
    ConnectionCheck,
    WorkflowCheck,
    validate_connection,
    validate_workflow,
)
from flowcanvas.workflow.nodes.base import DEFAULT_EDGE_COLOR, NODE_CAPABILITIES
from flowcanvas.workflow.workflow_history import WorkflowHistory
from flowcanvas.workflow.workflow_model import (
    Connection,
    Edge,
    Node,
    NodeType,
    Position,
    WorkflowDocument,
)
from flowcanvas.workflow.workflow_store import (
    SaveResult,
    SaveWorkflowRequest,
    StoredWorkflow,
    WorkflowStore,
    get_workflow_store,
)

logger = getLogger(__name__)

_EDGE_STROKE_WIDTH = 3

PositionLike = Union[Position, Mapping[str, float]]


class WorkflowEditor:
    """Registry + mutation engine + history for a single canvas."""

    def __init__(
        self,
        config: Optional[EditorConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._config = config or get_editor_config()
        self._rng = rng or random.Random()
        self._nodes: Tuple[Node, ...] = ()
        self._edges: Tuple[Edge, ...] = ()
        self._history = WorkflowHistory()
        self.workflow_name: str = ""
        self.workflow_id: Optional[str] = None
        self.is_saving: bool = False

    # ========================================================================
    # Registry queries
    # ========================================================================

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    @property
    def history(self) -> WorkflowHistory:
        return self._history

    @property
    def config(self) -> EditorConfig:
        return self._config

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def edges_into(self, node_id: str) -> Tuple[Edge, ...]:
        return tuple(e for e in self._edges if e.target == node_id)

    def edges_from(self, node_id: str) -> Tuple[Edge, ...]:
        return tuple(e for e in self._edges if e.source == node_id)

    def edge_color(self, source_id: str) -> str:
        """Stroke colour for edges leaving ``source_id``, by its node type."""
        node = self.get_node(source_id)
        if node is None:
            return DEFAULT_EDGE_COLOR
        capability = NODE_CAPABILITIES.get(node.node_type)
        return capability.edge_color if capability else DEFAULT_EDGE_COLOR

    def validate(self) -> WorkflowCheck:
        """Audit the whole graph (see ``validate_workflow``)."""
        return validate_workflow(self._nodes, self._edges)

    # ========================================================================
    # Node mutations (recorded in history)
    # ========================================================================

    def add_node(
        self,
        node_type: Union[NodeType, str],
        position: Optional[PositionLike] = None,
    ) -> Node:
        """Place a new node with the default payload for its type."""
        node_type = NodeType(node_type)
        capability = NODE_CAPABILITIES[node_type]
        node = Node(
            id=self._new_node_id(node_type),
            node_type=node_type,
            position=self._coerce_position(position) if position is not None
            else self._random_position(),
            data=capability.default_data(),
        )
        self._commit(self._nodes + (node,))
        logger.debug(f"Node added: {node.id}")
        return node

    def duplicate_node(self, node_id: str) -> Optional[Node]:
        """Clone a node (payload deep-copied) next to the original."""
        node = self.get_node(node_id)
        if node is None:
            return None
        offset = self._config.duplicate_offset
        clone = node.model_copy(
            deep=True,
            update={
                "id": self._new_node_id(node.node_type),
                "position": Position(
                    x=node.position.x + offset,
                    y=node.position.y + offset,
                ),
            },
        )
        self._commit(self._nodes + (clone,))
        logger.debug(f"Node duplicated: {node_id} -> {clone.id}")
        return clone

    def rename_node(self, node_id: str) -> bool:
        """Enter label-editing mode. Not recorded; ``save_node_label`` is."""
        return self._map_node(node_id, lambda n: n.with_data(is_editing=True)) is not None

    def save_node_label(self, node_id: str, label: str) -> Optional[Node]:
        """Commit a trimmed label; blank input keeps the previous label."""
        node = self.get_node(node_id)
        if node is None:
            return None
        new_label = (label or "").strip() or node.data.label
        updated = node.with_data(label=new_label, is_editing=False)
        self._commit(self._replaced(updated))
        return updated

    def lock_node(self, node_id: str) -> Optional[Node]:
        """Pin a node in place. There is no unlock operation."""
        node = self.get_node(node_id)
        if node is None:
            return None
        updated = node.model_copy(update={"draggable": False})
        self._commit(self._replaced(updated))
        return updated

    def move_node(self, node_id: str, position: PositionLike) -> Optional[Node]:
        node = self.get_node(node_id)
        if node is None:
            return None
        updated = node.model_copy(update={"position": self._coerce_position(position)})
        self._commit(self._replaced(updated))
        return updated

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        if self.get_node(node_id) is None:
            return False
        remaining_nodes = tuple(n for n in self._nodes if n.id != node_id)
        remaining_edges = tuple(
            e for e in self._edges if e.source != node_id and e.target != node_id
        )
        removed = len(self._edges) - len(remaining_edges)
        self._edges = remaining_edges
        self._commit(remaining_nodes)
        logger.debug(f"Node deleted: {node_id} ({removed} edge(s) removed)")
        return True

    # ========================================================================
    # Payload edits (not recorded)
    # ========================================================================

    def update_node_data(
        self,
        node_id: str,
        changes: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> Optional[Node]:
        """Shallow-merge fields into a node's payload."""
        merged: Dict[str, Any] = dict(changes or {})
        merged.update(fields)
        return self._map_node(node_id, lambda n: n.with_data(**merged))

    # ========================================================================
    # Edge mutations (not recorded)
    # ========================================================================

    def connect(
        self,
        source: str,
        target: str,
        target_handle: Optional[str] = None,
        source_handle: Optional[str] = None,
    ) -> ConnectionCheck:
        """Insert an edge if the validator accepts it.

        Rejected connections leave the graph untouched and come back
        with the reason. Re-connecting an existing edge is accepted
        without adding a duplicate. Empty handles are stored as ``None``.
        """
        source_handle = source_handle or None
        target_handle = target_handle or None
        connection = Connection(
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        check = validate_connection(self._nodes, self._edges, connection)
        if not check.valid:
            return check

        for edge in self._edges:
            if (
                edge.source == source
                and edge.target == target
                and (edge.source_handle or None) == source_handle
                and (edge.target_handle or None) == target_handle
            ):
                return check

        edge = Edge(
            id=f"edge__{source}{source_handle or ''}-{target}{target_handle or ''}",            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            style={"stroke": self.edge_color(source), "strokeWidth": _EDGE_STROKE_WIDTH},
        )
        self._edges = self._edges + (edge,)
        logger.debug(f"Edge added: {edge.id}")
        return check

    def remove_edge(self, edge_id: str) -> bool:
        remaining = tuple(e for e in self._edges if e.id != edge_id)
        if len(remaining) == len(self._edges):
            return False
        self._edges = remaining
        return True

    # ========================================================================
    # History
    # ========================================================================

    def undo(self) -> bool:
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._nodes = snapshot
        return True

    def redo(self) -> bool:
        snapshot = self._history.redo()
        if snapshot is None:
            return False
        self._nodes = snapshot
        return True

    # ========================================================================
    # Whole-graph replacement, import / export, persistence
    # ========================================================================

    def set_workflow_name(self, name: str) -> None:
        self.workflow_name = name

    def replace_graph(
        self,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        name: str = "",
    ) -> None:
        """Swap in a whole graph as one history entry (redo cleared)."""
        self._nodes = tuple(nodes)
        self._edges = tuple(edges)
        self.workflow_name = name
        self._history.record(self._nodes)

    def export_document(self) -> WorkflowDocument:
        return workflow_serializer.export_document(self)

    def export_json(self, indent: int = 2) -> str:
        return workflow_serializer.export_json(self, indent=indent)

    def export_to_file(self, directory: Union[str, Path]) -> Path:
        return workflow_serializer.export_to_file(self, directory)

    def import_json(self, raw: Any) -> WorkflowDocument:
        """Replace the graph with an exported document.

        Raises ``WorkflowImportError`` (and changes nothing) when the
        document is malformed. The imported graph is not validated.
        """
        document = workflow_serializer.parse_document(raw)
        self.replace_graph(document.nodes, document.edges, document.name)
        self.workflow_id = None
        logger.info(
            f"Workflow imported: '{document.name}' "
            f"({len(document.nodes)} nodes, {len(document.edges)} edges)"
        )
        return document

    def load_workflow(self, stored: StoredWorkflow) -> None:
        """Open a workflow returned by the store; later saves update it."""
        document = workflow_serializer.parse_document(
            {"name": stored.workflow_name, "nodes": stored.nodes, "edges": stored.edges}
        )
        self.replace_graph(document.nodes, document.edges, document.name)
        self.workflow_id = stored.id
        logger.info(f"Workflow loaded: '{stored.workflow_name}' ({stored.id})")

    def save_workflow(
        self,
        store: Optional[WorkflowStore] = None,
        description: str = "",
    ) -> SaveResult:
        """Validate the graph and upsert it through the store."""
        if not self.workflow_name.strip():
            return SaveResult.validation_failure(
                [{"loc": ["workflowName"], "msg": "Please enter a workflow name", "type": "missing"}],
                message="Please enter a workflow name",
            )

        check = self.validate()
        if not check.valid:
            return SaveResult.validation_failure(
                [{"loc": ["edges"], "msg": error, "type": "graph"} for error in check.errors]
            )

        request = SaveWorkflowRequest(
            id=self.workflow_id,
            workflow_name=self.workflow_name,
            description=description,
            nodes=[n.model_dump(mode="json", by_alias=True) for n in self._nodes],
            edges=[e.model_dump(mode="json", by_alias=True) for e in self._edges],
        )
        store = store or get_workflow_store()
        self.is_saving = True
        try:
            result = store.save(request)
        finally:
            self.is_saving = False

        if result.success and result.data is not None:
            self.workflow_id = result.data.id
        return result

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _commit(self, nodes: Tuple[Node, ...]) -> None:
        self._nodes = nodes
        self._history.record(nodes)

    def _replaced(self, updated: Node) -> Tuple[Node, ...]:
        return tuple(updated if n.id == updated.id else n for n in self._nodes)

    def _map_node(self, node_id: str, fn: Callable[[Node], Node]) -> Optional[Node]:
        node = self.get_node(node_id)
        if node is None:
            return None
        updated = fn(node)
        self._nodes = self._replaced(updated)
        return updated

    def _known_ids(self) -> set:
        ids = {n.id for n in self._nodes}
        for snapshot in self._history.entries + self._history.redo_stack:
            ids.update(n.id for n in snapshot)
        return ids

    def _new_node_id(self, node_type: NodeType) -> str:
        # Ids stay unique across history so undo never resurrects a clash.
        taken = self._known_ids()
        stamp = int(time.time() * 1000)
        while f"{node_type.value}-{stamp}" in taken:
            stamp += 1
        return f"{node_type.value}-{stamp}"

    def _random_position(self) -> Position:
        cfg = self._config
        return Position(
            x=cfg.viewport_x_min + self._rng.random() * cfg.viewport_width,
            y=cfg.viewport_y_min + self._rng.random() * cfg.viewport_height,
        )

    @staticmethod
    def _coerce_position(position: PositionLike) -> Position:
        if isinstance(position, Position):
            return position
        return Position.model_validate(position)
