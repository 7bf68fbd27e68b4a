"""
Editor Configuration.

Controls where workflows are stored, where new nodes land on the
canvas, and the default sampling settings for LLM node runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from flowcanvas.config.env_utils import read_env_defaults

_DEFAULT_WORKFLOW_DIR = str(Path(__file__).parent.parent.parent / "workflows")


@dataclass
class EditorConfig:
    """Canvas editor and LLM-run settings."""

    workflow_dir: str = _DEFAULT_WORKFLOW_DIR

    # New nodes without an explicit position land in
    # [x_min, x_min + width) x [y_min, y_min + height).
    viewport_x_min: float = 200.0
    viewport_y_min: float = 100.0
    viewport_width: float = 400.0
    viewport_height: float = 400.0
    duplicate_offset: float = 24.0

    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000

    _ENV_MAP = {
        "workflow_dir": "FLOWCANVAS_WORKFLOW_DIR",
        "viewport_x_min": "FLOWCANVAS_VIEWPORT_X_MIN",
        "viewport_y_min": "FLOWCANVAS_VIEWPORT_Y_MIN",
        "viewport_width": "FLOWCANVAS_VIEWPORT_WIDTH",
        "viewport_height": "FLOWCANVAS_VIEWPORT_HEIGHT",
        "duplicate_offset": "FLOWCANVAS_DUPLICATE_OFFSET",
        "llm_temperature": "FLOWCANVAS_LLM_TEMPERATURE",
        "llm_max_tokens": "FLOWCANVAS_LLM_MAX_TOKENS",
    }

    @classmethod
    def get_default_instance(cls) -> "EditorConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "editor"

    @property
    def workflow_path(self) -> Path:
        return Path(self.workflow_dir)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self._ENV_MAP}


# ── Singleton ──

_config_instance: Optional[EditorConfig] = None


def get_editor_config() -> EditorConfig:
    """Return the process-wide EditorConfig, read from the environment once."""
    global _config_instance
    if _config_instance is None:
        _config_instance = EditorConfig.get_default_instance()
    return _config_instance


def reset_editor_config() -> None:
    """Forget the cached config so the next lookup re-reads the environment."""
    global _config_instance
    _config_instance = None
