"""Options objects -> ordered request parameters.

An options dataclass declares its wire names with ``param()``. Field order
is the order parameters are sent in, which matters for signing. Fields
declared ``omitempty`` are left out when empty/zero; all others are always
sent.
"""
from __future__ import annotations
import dataclasses
from enum import Enum
from typing import Any, Dict, Optional


def param(key: str, default: Any = "", *, omitempty: bool = False) -> Any:
    return dataclasses.field(default=default, metadata={"key": key, "omitempty": omitempty})


def _to_str(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(opts: Optional[Any]) -> Dict[str, str]:
    if opts is None:
        return {}
    if isinstance(opts, dict):
        return {k: _to_str(v) for k, v in opts.items()}
    if not dataclasses.is_dataclass(opts):
        raise TypeError(f"cannot encode {type(opts).__name__} as request parameters")

    params: Dict[str, str] = {}
    for f in dataclasses.fields(opts):
        key = f.metadata.get("key")
        if key is None:
            continue
        value = getattr(opts, f.name)
        if f.metadata.get("omitempty") and (value is None or value == "" or value == 0):
            continue
        params[key] = _to_str(value)
    return params
