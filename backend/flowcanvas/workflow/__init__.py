"""
Workflow Engine — graph editing for the visual LLM canvas.

Maintains a consistent, acyclic, type-safe node graph under live
edits, with linear undo/redo and JSON import/export.

Architecture:
    workflow_model       — Node / Edge / document data models
    nodes/               — Capability table + LLM node runner
    connection_validator — Edge type contracts and cycle checks
    workflow_history     — Snapshot list with undo / redo cursor
    workflow_editor      — Mutation engine (one per editing session)
    workflow_serializer  — Export / import of the JSON document
    workflow_store       — JSON-file persistence
    workflow_executor    — Runs LLM nodes in order via LangGraph
"""

from flowcanvas.workflow.workflow_model import (
    Connection,
    Edge,
    ImageSourceData,
    LlmInvocationData,
    Node,
    NodeData,
    NodeType,
    Position,
    TextSourceData,
    WorkflowDocument,
)
from flowcanvas.workflow.connection_validator import (
    ConnectionCheck,
    WorkflowCheck,
    has_cycle,
    validate_connection,
    validate_workflow,
    would_create_cycle,
)
from flowcanvas.workflow.exceptions import WorkflowImportError, WorkflowValidationError
from flowcanvas.workflow.workflow_history import WorkflowHistory
from flowcanvas.workflow.workflow_store import (
    SaveResult,
    StoredWorkflow,
    WorkflowStore,
    get_workflow_store,
)
from flowcanvas.workflow.workflow_editor import WorkflowEditor
from flowcanvas.workflow.nodes.model_nodes import LlmNodeRunner, LlmRunResult
from flowcanvas.workflow.workflow_executor import WorkflowExecutor

__all__ = [
    "Connection",
    "Edge",
    "ImageSourceData",
    "LlmInvocationData",
    "Node",
    "NodeData",
    "NodeType",
    "Position",
    "TextSourceData",
    "WorkflowDocument",
    "ConnectionCheck",
    "WorkflowCheck",
    "has_cycle",
    "validate_connection",
    "validate_workflow",
    "would_create_cycle",
    "WorkflowImportError",
    "WorkflowValidationError",
    "WorkflowHistory",
    "SaveResult",
    "StoredWorkflow",
    "WorkflowStore",
    "get_workflow_store",
    "WorkflowEditor",
    "LlmNodeRunner",
    "LlmRunResult",
    "WorkflowExecutor",
]
