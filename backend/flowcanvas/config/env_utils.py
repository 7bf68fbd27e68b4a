"""
Environment helpers shared by config dataclasses.

``read_env_defaults`` maps dataclass fields to environment variables
and coerces the raw strings to each field's declared type.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Dict, Mapping

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce(raw: str, field: Field) -> Any:
    type_name = field.type if isinstance(field.type, str) else getattr(field.type, "__name__", "")
    if type_name == "bool":
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if type_name == "int":
        return int(raw)
    if type_name == "float":
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Mapping[str, str],
    fields: Mapping[str, Field],
) -> Dict[str, Any]:
    """Collect constructor kwargs for every field whose env var is set.

    Values that fail to coerce are skipped (the dataclass default wins)
    and logged.
    """
    defaults: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        field = fields.get(field_name)
        if field is None:
            continue
        try:
            defaults[field_name] = _coerce(raw, field)
        except ValueError as e:
            fallback = field.default if field.default is not MISSING else None
            logger.warning(
                f"Ignoring {env_name}={raw!r} ({e}); using default {fallback!r}"
            )
    return defaults
