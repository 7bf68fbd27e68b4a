"""
Node capability table — what each node type produces and accepts.

The set of node types is closed; the table is a static map keyed
by ``NodeType`` and is consulted by the connection validator, the
editor (default payloads, edge colours) and the LLM node runner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from flowcanvas.workflow.workflow_model import NODE_DATA_TYPES, NodeData, NodeType


class OutputKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    LLM_OUTPUT = "llm-output"


class InputSlot(str, Enum):
    PROMPT = "prompt"
    SYSTEM_PROMPT = "system-prompt"
    IMAGE = "image"


# Handle indices below this value are text slots; the rest take images.
IMAGE_SLOT_START = 2

DEFAULT_EDGE_COLOR = "#a855f7"


@dataclass(frozen=True)
class NodeCapability:
    """Static description of one node type."""
    node_type: NodeType
    display_name: str
    outputs: Tuple[OutputKind, ...]
    inputs: Tuple[InputSlot, ...] = field(default_factory=tuple)
    edge_color: str = DEFAULT_EDGE_COLOR

    @property
    def accepts_inputs(self) -> bool:
        return bool(self.inputs)

    @property
    def data_type(self):
        return NODE_DATA_TYPES[self.node_type]

    def default_data(self) -> NodeData:
        return self.data_type()

    def slot_for(self, index: int) -> Optional[InputSlot]:
        """Map a handle index to its input slot (index 2+ are all images)."""
        if not self.inputs or index < 0:
            return None
        if index >= IMAGE_SLOT_START and InputSlot.IMAGE in self.inputs:
            return InputSlot.IMAGE
        if index < len(self.inputs):
            return self.inputs[index]
        return None


NODE_CAPABILITIES: Dict[NodeType, NodeCapability] = {
    NodeType.TEXT_SOURCE: NodeCapability(
        node_type=NodeType.TEXT_SOURCE,
        display_name="Text",
        outputs=(OutputKind.TEXT,),
        edge_color="#8b5cf6",
    ),
    NodeType.IMAGE_SOURCE: NodeCapability(
        node_type=NodeType.IMAGE_SOURCE,
        display_name="Image",
        outputs=(OutputKind.IMAGE,),
        edge_color="#10b981",
    ),
    NodeType.LLM_INVOCATION: NodeCapability(
        node_type=NodeType.LLM_INVOCATION,
        display_name="LLM",
        outputs=(OutputKind.LLM_OUTPUT,),
        inputs=(InputSlot.PROMPT, InputSlot.SYSTEM_PROMPT, InputSlot.IMAGE),
        edge_color="#ec4899",
    ),
}


def get_capability(node_type) -> Optional[NodeCapability]:
    """Look up a capability by enum member or wire value."""
    try:
        return NODE_CAPABILITIES.get(NodeType(node_type))
    except ValueError:
        return None
