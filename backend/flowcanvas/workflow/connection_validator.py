"""
Connection Validator — decide whether an edge may exist.

Two entry points:

* ``validate_connection`` checks one proposed edge against the
  current graph (type contract + acyclicity). ``WorkflowEditor.connect``
  gates on it.
* ``validate_workflow`` audits a whole graph, catching edges that
  arrived out of band (import, load). Run before saving and before
  execution.

Rules, in order, first failure wins:

1. both endpoint nodes exist
2. no self-loop
3. both node types are known
4. the target type declares inputs (only LLM nodes do)
5. the target handle index matches the source output kind
   (images into slots 2+, text / LLM output into slots 0-1)
6. the edge does not close a directed cycle
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, Iterable, List, Optional, Sequence

from flowcanvas.workflow.nodes.base import (
    IMAGE_SLOT_START,
    NodeCapability,
    OutputKind,
    get_capability,
)
from flowcanvas.workflow.workflow_model import Edge, Node

logger = getLogger(__name__)

CYCLE_ERROR = "Connection would create a cycle; workflows must be DAGs"
WORKFLOW_CYCLE_ERROR = "Circular loop detected in workflow; workflows must be DAGs"

_WHITE, _GREY, _BLACK = 0, 1, 2


@dataclass(frozen=True)
class ConnectionCheck:
    """Verdict for a single proposed edge."""
    valid: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"valid": self.valid}
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class WorkflowCheck:
    """Verdict for a whole graph."""
    valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


_VALID = ConnectionCheck(valid=True)


def _reject(error: str) -> ConnectionCheck:
    return ConnectionCheck(valid=False, error=error)


# ====================================================================
# Public API
# ====================================================================


def parse_handle_index(handle: Optional[str]) -> int:
    """Return the slot index encoded in ``"input-<index>"``.

    Missing or unparseable handles map to slot 0.
    """
    if not handle:
        return 0
    parts = handle.split("-")
    try:
        return int(parts[1])
    except (IndexError, ValueError):
        return 0


def check_type_contract(
    source: Node,
    target: Node,
    target_handle: Optional[str] = None,
) -> ConnectionCheck:
    """Rules 3-5: node types known, target accepts inputs, slot matches."""
    source_cap = get_capability(source.node_type)
    if source_cap is None:
        return _reject(f"Invalid node type: {_type_name(source)}")

    target_cap = get_capability(target.node_type)
    if target_cap is None:
        return _reject(f"Invalid node type: {_type_name(target)}")

    if not target_cap.accepts_inputs:
        return _reject(f"{target_cap.display_name} nodes cannot receive connections")

    index = parse_handle_index(target_handle)
    if OutputKind.IMAGE in source_cap.outputs:
        if index < IMAGE_SLOT_START:
            return _reject("Image cannot feed prompt slot")
        return _VALID

    if index >= IMAGE_SLOT_START:
        return _reject(f"{_text_output_name(source_cap)} cannot feed image slot")
    return _VALID


def would_create_cycle(
    edges: Iterable[Edge],
    source: Optional[str],
    target: Optional[str],
) -> bool:
    """True if adding ``source -> target`` closes a directed cycle.

    Depth-first reachability from ``target`` over the existing edges;
    reaching ``source`` means the new edge would close a loop.
    """
    if not source or not target:
        return False

    adjacency = _adjacency(edges)
    visited = set()
    stack = [target]
    while stack:
        node_id = stack.pop()
        if node_id == source:
            return True
        if node_id in visited:
            continue
        visited.add(node_id)
        stack.extend(adjacency.get(node_id, ()))
    return False


def has_cycle(nodes: Iterable[Node], edges: Iterable[Edge]) -> bool:
    """Full-graph white/grey/black DFS scan. O(V+E), no recursion."""
    adjacency = _adjacency(edges)
    colour: Dict[str, int] = {}
    roots = [n.id for n in nodes] + list(adjacency)

    for root in roots:
        if colour.get(root, _WHITE) != _WHITE:
            continue
        colour[root] = _GREY
        stack = [(root, iter(adjacency.get(root, ())))]
        while stack:
            node_id, children = stack[-1]
            for child in children:
                state = colour.get(child, _WHITE)
                if state == _GREY:
                    return True
                if state == _WHITE:
                    colour[child] = _GREY
                    stack.append((child, iter(adjacency.get(child, ()))))
                    break
            else:
                colour[node_id] = _BLACK
                stack.pop()
    return False


def validate_connection(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    candidate: Any,
) -> ConnectionCheck:
    """Check a proposed edge (``Edge`` or ``Connection``) against the graph."""
    source_id = candidate.source
    target_id = candidate.target
    target_handle = getattr(candidate, "target_handle", None)

    node_map = {n.id: n for n in nodes}
    source = node_map.get(source_id)
    target = node_map.get(target_id)

    if source is None:
        result = _reject(f"Source node not found: {source_id}")
    elif target is None:
        result = _reject(f"Target node not found: {target_id}")
    elif source.id == target.id:
        result = _reject("Cannot connect a node to itself (self-loop)")
    else:
        result = check_type_contract(source, target, target_handle)
        if result.valid and would_create_cycle(edges, source_id, target_id):
            result = _reject(CYCLE_ERROR)

    if not result.valid:
        logger.debug(
            f"Connection rejected {source_id} -> {target_id} "
            f"[{target_handle}]: {result.error}"
        )
    return result


def validate_workflow(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
) -> WorkflowCheck:
    """Audit every edge against rules 1-5, then scan the graph for cycles."""
    errors: List[str] = []
    node_map = {n.id: n for n in nodes}

    for edge in edges:
        source = node_map.get(edge.source)
        target = node_map.get(edge.target)

        if source is None:
            errors.append(f"Edge references unknown source node: {edge.source}")
            continue
        if target is None:
            errors.append(f"Edge references unknown target node: {edge.target}")
            continue
        if source.id == target.id:
            errors.append(f"Self-loop detected on node: {source.id}")
            continue

        contract = check_type_contract(source, target, edge.target_handle)
        if not contract.valid:
            errors.append(
                f"Invalid connection between {source.id} and {target.id}: "
                f"{contract.error}"
            )

    if has_cycle(nodes, edges):
        errors.append(WORKFLOW_CYCLE_ERROR)

    return WorkflowCheck(valid=not errors, errors=errors)


def topological_order(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Node]:
    """Kahn ordering of ``nodes``; ties keep canvas order.

    Edges touching unknown nodes are ignored. Raises ``ValueError``
    if the graph has a cycle.
    """
    node_ids = [n.id for n in nodes]
    known = set(node_ids)
    in_degree = {node_id: 0 for node_id in node_ids}
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.source in known and edge.target in known:
            adjacency.setdefault(edge.source, []).append(edge.target)
            in_degree[edge.target] += 1

    node_map = {n.id: n for n in nodes}
    ready = deque(node_id for node_id in node_ids if in_degree[node_id] == 0)
    ordered: List[Node] = []
    while ready:
        node_id = ready.popleft()
        ordered.append(node_map[node_id])
        for child in adjacency.get(node_id, ()):
            in_degree[child] -= 1
            if in_degree[child] == 0:
                ready.append(child)

    if len(ordered) != len(node_ids):
        raise ValueError(WORKFLOW_CYCLE_ERROR)
    return ordered


# ====================================================================
# Internal helpers
# ====================================================================


def _adjacency(edges: Iterable[Edge]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.source and edge.target:
            adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def _type_name(node: Node) -> str:
    return getattr(node.node_type, "value", node.node_type)


def _text_output_name(capability: NodeCapability) -> str:
    if OutputKind.LLM_OUTPUT in capability.outputs:
        return "LLM output"
    return "Text output"
