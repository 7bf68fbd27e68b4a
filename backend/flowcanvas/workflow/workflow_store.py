"""
Workflow Store — JSON-file persistence for saved workflows.

Stores each workflow as an individual JSON file under a configurable
directory. ``save`` is an upsert keyed by workflow id, so saving the
same logical workflow twice rewrites one file.

Failures never raise; they come back as a ``SaveResult`` whose
``error`` is either ``"validation_error"`` (the payload failed the
schema) or ``"storage_error"`` (the write failed).
"""

from __future__ import annotations

import json
import uuid
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from flowcanvas.config import get_editor_config
from flowcanvas.workflow.workflow_model import utc_timestamp

logger = getLogger(__name__)

VALIDATION_ERROR = "validation_error"
STORAGE_ERROR = "storage_error"

_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SaveWorkflowRequest(BaseModel):
    """Payload accepted by ``WorkflowStore.save``."""

    model_config = _MODEL_CONFIG

    id: Optional[str] = None
    workflow_name: str = Field(min_length=1)
    description: str = ""
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]


class StoredWorkflow(BaseModel):
    """A persisted workflow. ``nodes`` / ``edges`` are kept verbatim."""

    model_config = _MODEL_CONFIG

    id: str
    workflow_name: str
    description: str = ""
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_timestamp)
    updated_at: str = Field(default_factory=utc_timestamp)


class SaveResult(BaseModel):
    """Outcome of a save: ``data`` on success, ``error`` otherwise."""

    model_config = _MODEL_CONFIG

    success: bool
    data: Optional[StoredWorkflow] = None
    error: Optional[str] = None
    message: Optional[str] = None
    details: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def validation_failure(
        cls, details: List[Dict[str, Any]], message: str = "Workflow failed validation",
    ) -> "SaveResult":
        return cls(success=False, error=VALIDATION_ERROR, message=message, details=details)

    @classmethod
    def storage_failure(cls, message: str) -> "SaveResult":
        return cls(
            success=False,
            error=STORAGE_ERROR,
            message="Failed to save workflow",
            details=[{"msg": message}],
        )


class WorkflowStore:
    """Persist and load workflows as JSON files."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        self._dir = Path(storage_dir) if storage_dir else get_editor_config().workflow_path
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"WorkflowStore initialized at {self._dir}")

    @property
    def storage_dir(self) -> Path:
        return self._dir

    # ── CRUD ──

    def save(self, payload: Union[SaveWorkflowRequest, Mapping[str, Any]]) -> SaveResult:
        """Validate, then create or update a workflow."""
        try:
            if isinstance(payload, SaveWorkflowRequest):
                request = payload
            else:
                request = SaveWorkflowRequest.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Rejected workflow save: {e.error_count()} validation error(s)")
            return SaveResult.validation_failure(
                [
                    {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                    for err in e.errors()
                ]
            )

        workflow_id = request.id or str(uuid.uuid4())
        existing = self.load(workflow_id)
        now = utc_timestamp()
        stored = StoredWorkflow(
            id=workflow_id,
            workflow_name=request.workflow_name,
            description=request.description,
            nodes=request.nodes,
            edges=request.edges,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )

        try:
            self._path_for(workflow_id).write_text(
                stored.model_dump_json(by_alias=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"Failed to save workflow {workflow_id}: {e}")
            return SaveResult.storage_failure(str(e))

        action = "updated" if existing else "created"
        logger.info(f"Workflow {action}: {stored.workflow_name} ({workflow_id})")
        return SaveResult(success=True, data=stored)

    def load(self, workflow_id: str) -> Optional[StoredWorkflow]:
        """Load a single workflow by ID."""
        path = self._path_for(workflow_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return StoredWorkflow.model_validate(data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load workflow {workflow_id}: {e}")
            return None

    def delete(self, workflow_id: str) -> bool:
        """Delete a saved workflow."""
        path = self._path_for(workflow_id)
        if path.exists():
            path.unlink()
            logger.info(f"Workflow deleted: {workflow_id}")
            return True
        return False

    def list_all(self) -> List[StoredWorkflow]:
        """List all saved workflows, most recently updated first."""
        workflows: List[StoredWorkflow] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                workflows.append(StoredWorkflow.model_validate(data))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        workflows.sort(key=lambda w: w.updated_at, reverse=True)
        return workflows

    def exists(self, workflow_id: str) -> bool:
        return self._path_for(workflow_id).exists()

    # ── Internals ──

    def _path_for(self, workflow_id: str) -> Path:
        # Sanitize ID for filesystem
        safe_id = "".join(c for c in workflow_id if c.isalnum() or c in "-_")
        return self._dir / f"{safe_id}.json"


# ── Singleton ──

_store_instance: Optional[WorkflowStore] = None


def get_workflow_store() -> WorkflowStore:
    """Return the global WorkflowStore singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = WorkflowStore()
    return _store_instance
