"""
FlowCanvas — graph editing engine for visual LLM workflows.

Compose text, image and LLM nodes into a directed acyclic graph,
edit it with undo/redo, and round-trip it through JSON.
"""

__version__ = "0.1.0"
