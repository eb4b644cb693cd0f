from __future__ import annotations

import json
import math
from typing import Any
import collections.abc

import yaml

from tala.tala_ast import Stmt
from tala.tala_datatypes import RuntimeValue

FORMATS = ("json", "yaml")


# --------------------------
# Helpers
# --------------------------

def _to_builtin(obj: Any) -> Any:
    """Reduce AST nodes and runtime values to dicts, lists and scalars."""
    if isinstance(obj, Stmt):
        return obj.to_dict()
    if isinstance(obj, RuntimeValue):
        return _to_builtin(obj.to_builtin())
    if isinstance(obj, float) and not math.isfinite(obj):
        # JSON has no literal for these
        return str(obj)
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: _to_builtin(v) for k, v in obj.items()}
    return obj


# --------------------------
# Public API
# --------------------------

def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """
    Render an AST node, a runtime value or plain data as text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = _to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(text: str, *, fmt: str) -> Any:
    """Read back the plain-data form written by `serialize`."""
    f = (fmt or '').lower()
    if f == 'json':
        return json.loads(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "FORMATS",
    "deserialize",
    "serialize",
]
