"""
Workflow Nodes Package.

``base`` holds the static capability table for the closed set of
node types; ``model_nodes`` runs LLM invocation nodes.
"""

from flowcanvas.workflow.nodes.base import (
    DEFAULT_EDGE_COLOR,
    IMAGE_SLOT_START,
    NODE_CAPABILITIES,
    InputSlot,
    NodeCapability,
    OutputKind,
    get_capability,
)

__all__ = [
    "DEFAULT_EDGE_COLOR",
    "IMAGE_SLOT_START",
    "NODE_CAPABILITIES",
    "InputSlot",
    "NodeCapability",
    "OutputKind",
    "get_capability",
]
