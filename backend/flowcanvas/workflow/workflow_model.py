"""
Workflow Data Models — nodes, edges, and the portable export document.

These are the serializable data structures that describe a
canvas workflow graph. They are mutated only through
``WorkflowEditor``, snapshotted by ``WorkflowHistory`` and
persisted by ``WorkflowStore`` / ``workflow_serializer``.

Every model is frozen so history snapshots can share node
objects instead of deep-copying them. Field names are
snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, model_validator
from pydantic.alias_generators import to_camel


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)


class NodeType(str, Enum):
    """Closed set of node kinds that can be placed on the canvas."""
    TEXT_SOURCE = "textNode"
    IMAGE_SOURCE = "imageNode"
    LLM_INVOCATION = "llmNode"


class Position(BaseModel):
    """Editor-space coordinates. No semantic constraint."""

    model_config = _WIRE_CONFIG

    x: float = 0.0
    y: float = 0.0


# ============================================================================
# Node payloads
# ============================================================================


class NodeData(BaseModel):
    """Fields shared by every node payload.

    Unknown keys are kept so UI-attached fields survive a
    save / load round trip.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    label: str = ""
    is_editing: bool = False

    def merged(self, changes: Mapping[str, Any]) -> "NodeData":
        """Return a copy with ``changes`` shallow-merged in.

        Keys may be given either as attribute names or wire names.
        """
        values = self.model_dump(by_alias=True)
        fields = type(self).model_fields
        for key, value in changes.items():
            field = fields.get(key)
            values[(field.alias if field and field.alias else key)] = value
        return type(self).model_validate(values)


class TextSourceData(NodeData):
    label: str = "Text"
    text: str = ""


class ImageSourceData(NodeData):
    label: str = "Upload Image"
    image_url: Optional[str] = None


class LlmInvocationData(NodeData):
    label: str = "Any LLM"
    output: Optional[str] = None


NODE_DATA_TYPES: Dict[NodeType, Type[NodeData]] = {
    NodeType.TEXT_SOURCE: TextSourceData,
    NodeType.IMAGE_SOURCE: ImageSourceData,
    NodeType.LLM_INVOCATION: LlmInvocationData,
}


# ============================================================================
# Graph elements
# ============================================================================


class Node(BaseModel):
    """A single node placed on the workflow canvas.

    ``data`` is coerced to the payload class registered for
    ``node_type`` in ``NODE_DATA_TYPES``.
    """

    model_config = _WIRE_CONFIG

    id: str
    node_type: NodeType = Field(alias="type")
    position: Position = Field(default_factory=Position)
    data: SerializeAsAny[NodeData] = Field(default_factory=NodeData)
    draggable: bool = True

    @model_validator(mode="before")
    @classmethod
    def _coerce_payload(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        raw_type = values.get("type", values.get("node_type"))
        try:
            data_cls = NODE_DATA_TYPES[NodeType(raw_type)]
        except (ValueError, KeyError):
            return values  # field validation reports the bad type
        data = values.get("data")
        if data is None:
            data = {}
        if isinstance(data, NodeData):
            if isinstance(data, data_cls):
                return values
            data = data.model_dump(by_alias=True)
        return {**values, "data": data_cls.model_validate(data)}

    @property
    def label(self) -> str:
        return self.data.label

    def with_data(self, **changes: Any) -> "Node":
        """Return a copy whose payload has ``changes`` merged in."""
        return self.model_copy(update={"data": self.data.merged(changes)})


class Edge(BaseModel):
    """A directed connection from one node's output to another's input slot.

    ``target_handle`` encodes the input slot as ``"input-<index>"``.
    """

    model_config = _WIRE_CONFIG

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    style: Dict[str, Any] = Field(default_factory=dict)


class Connection(BaseModel):
    """A proposed edge, before it has an id."""

    model_config = _WIRE_CONFIG

    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


# A history snapshot: the full, immutable node set.
Snapshot = Tuple[Node, ...]


class WorkflowDocument(BaseModel):
    """The portable export file: ``{name, nodes, edges, exportedAt}``."""

    model_config = _WIRE_CONFIG

    name: str = ""
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    exported_at: str = Field(default_factory=lambda: utc_timestamp())


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
