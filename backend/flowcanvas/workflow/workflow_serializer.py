"""
Workflow Serializer — export / import of the portable JSON document.

Document shape::

    {"name": str, "nodes": [...], "edges": [...], "exportedAt": ISO-8601}

Export never validates. Import checks structure only (``nodes`` and
``edges`` must be arrays of well-formed entries); it does not run
``validate_workflow``, so imported graphs may carry edges that
``connect`` would have refused.
"""

from __future__ import annotations

import json
import time
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Union

from pydantic import TypeAdapter, ValidationError

from flowcanvas.workflow.exceptions import WorkflowImportError
from flowcanvas.workflow.workflow_model import Edge, Node, WorkflowDocument, utc_timestamp

if TYPE_CHECKING:
    from flowcanvas.workflow.workflow_editor import WorkflowEditor

logger = getLogger(__name__)

DEFAULT_EXPORT_NAME = "Workflow"

_NODE_LIST = TypeAdapter(List[Node])
_EDGE_LIST = TypeAdapter(List[Edge])


# ====================================================================
# Export
# ====================================================================


def export_document(editor: "WorkflowEditor") -> WorkflowDocument:
    return WorkflowDocument(
        name=editor.workflow_name or DEFAULT_EXPORT_NAME,
        nodes=list(editor.nodes),
        edges=list(editor.edges),
        exported_at=utc_timestamp(),
    )


def export_json(editor: "WorkflowEditor", indent: int = 2) -> str:
    return export_document(editor).model_dump_json(by_alias=True, indent=indent)


def export_to_file(editor: "WorkflowEditor", directory: Union[str, Path]) -> Path:
    """Write ``<name>-<epoch ms>.json`` into ``directory`` and return its path."""
    document = export_document(editor)
    safe_name = "".join(c for c in document.name if c.isalnum() or c in "-_ ") or "workflow"
    path = Path(directory) / f"{safe_name}-{int(time.time() * 1000)}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    logger.info(f"Workflow exported: {path}")
    return path


# ====================================================================
# Import
# ====================================================================


def parse_document(raw: Any) -> WorkflowDocument:
    """Parse an export document from JSON text, bytes or a decoded dict.

    Raises:
        WorkflowImportError: if the document is not JSON, is missing
            ``nodes`` / ``edges`` arrays, or holds malformed entries.
    """
    data = _decode(raw)
    if not isinstance(data, dict):
        raise WorkflowImportError("Invalid workflow file: expected a JSON object")

    nodes = data.get("nodes")
    if not isinstance(nodes, list):
        raise WorkflowImportError("Invalid workflow file: missing or invalid nodes")

    edges = data.get("edges")
    if not isinstance(edges, list):
        raise WorkflowImportError("Invalid workflow file: missing or invalid edges")

    try:
        parsed_nodes = _NODE_LIST.validate_python(nodes)
        parsed_edges = _EDGE_LIST.validate_python(edges)
    except ValidationError as e:
        raise WorkflowImportError(
            f"Invalid workflow file: {e.error_count()} malformed node/edge field(s)"
        ) from e

    name = data.get("name")
    exported_at = data.get("exportedAt")
    return WorkflowDocument(
        name=name if isinstance(name, str) else "",
        nodes=parsed_nodes,
        edges=parsed_edges,
        exported_at=exported_at if isinstance(exported_at, str) else utc_timestamp(),
    )


def read_file(path: Union[str, Path]) -> WorkflowDocument:
    """Parse an export document stored on disk."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise WorkflowImportError(f"Error reading file: {e}") from e
    return parse_document(raw)


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WorkflowImportError(f"Error parsing JSON file: {e}") from e
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise WorkflowImportError(f"Error parsing JSON file: {e}") from e
    return raw
