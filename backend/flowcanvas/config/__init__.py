"""
Configuration for the canvas editor.

Settings are dataclasses populated from environment variables.
"""
from flowcanvas.config.editor_config import (
    EditorConfig,
    get_editor_config,
    reset_editor_config,
)
from flowcanvas.config.env_utils import read_env_defaults

__all__ = [
    "EditorConfig",
    "get_editor_config",
    "reset_editor_config",
    "read_env_defaults",
]
