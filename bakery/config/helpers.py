"""Utility helpers shared by the bakery configuration loader."""

from __future__ import annotations

import io
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import MarkedYAMLError, YAMLError


def _build_safe_yaml() -> YAML:
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader


def _build_roundtrip_yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 120
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def _dump_yaml(data: typ.Mapping[str, typ.Any]) -> str:
    """Serialise ``data`` with the round-trip emitter and return the text."""
    buffer = io.StringIO()
    _build_roundtrip_yaml().dump(dict(data), buffer)
    return buffer.getvalue()


def _describe_error(exc: BaseException) -> str:
    """Summarise a load failure without echoing file content.

    YAML errors normally quote the offending line, which may hold a password,
    so only the problem description and its position are kept.
    """
    if isinstance(exc, MarkedYAMLError):
        problem = exc.problem or exc.context or "invalid YAML"
        mark = exc.problem_mark or exc.context_mark
        if mark is not None:
            return f"{problem} (line {mark.line + 1}, column {mark.column + 1})"
        return str(problem)
    if isinstance(exc, YAMLError):
        return type(exc).__name__
    return str(exc)


__all__ = [
    "_build_roundtrip_yaml",
    "_build_safe_yaml",
    "_describe_error",
    "_dump_yaml",
]
