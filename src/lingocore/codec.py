"""Flat, field-tagged dict and JSON interchange for records, states and events.

Every record is encoded field by field (never positionally): enums by value,
tuples and sets as lists, mapping keys as strings, nested records as nested
objects. Events additionally carry a ``"type"`` tag naming their variant.
"""

from __future__ import annotations

import json
import logging
import re
import types
from collections.abc import Mapping
from dataclasses import MISSING, fields, is_dataclass
from enum import Enum
from typing import Any, TypeVar, Union, cast, get_args, get_origin, get_type_hints

from . import cloze, scrambler, sniper

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

T = TypeVar("T")

MODES: dict[str, tuple[type, tuple[type, ...]]] = {
    "scrambler": (scrambler.ScramblerState, scrambler.EVENT_TYPES),
    "cloze": (cloze.ClozeState, cloze.EVENT_TYPES),
    "sniper": (sniper.SniperState, sniper.EVENT_TYPES),
}


def to_dict(record: object) -> dict[str, object]:
    """Encode a dataclass record as a JSON-ready dict."""
    if not is_dataclass(record) or isinstance(record, type):
        raise TypeError(f"Expected a dataclass instance, got {type(record).__name__}.")
    return {item.name: _encode(getattr(record, item.name)) for item in fields(record)}


def _encode(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return to_dict(value)
    if isinstance(value, Mapping):
        mapping = cast(Mapping[object, object], value)
        return {str(key): _encode(item) for key, item in mapping.items()}
    if isinstance(value, set | frozenset):
        return sorted(_encode(item) for item in value)  # type: ignore[type-var]
    if isinstance(value, list | tuple):
        return [_encode(item) for item in value]
    return value


def from_dict(cls: type[T], raw: object) -> T:
    """Rebuild a dataclass record from its encoded dict.

    Missing fields fall back to their defaults; malformed values raise ValueError.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"{cls.__name__} payload must be a JSON object.")
    payload = cast(dict[str, object], raw)
    hints = get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for item in fields(cast(Any, cls)):
        if not item.init:
            continue
        if item.name not in payload:
            if item.default is MISSING and item.default_factory is MISSING:
                raise ValueError(f"{cls.__name__} payload is missing '{item.name}'.")
            continue
        kwargs[item.name] = _decode(hints[item.name], payload[item.name], f"{cls.__name__}.{item.name}")
    return cls(**kwargs)


def _decode(hint: Any, value: object, where: str) -> Any:
    origin = get_origin(hint)
    args = get_args(hint)

    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        options = [arg for arg in args if arg is not type(None)]
        if len(options) != 1:
            raise ValueError(f"{where}: unsupported union type {hint!r}.")
        return _decode(options[0], value, where)

    if hint is Any or hint is object:
        return value

    if origin is tuple:
        items = _expect_list(value, where)
        return tuple(_decode(args[0], item, where) for item in items)

    if origin is frozenset or origin is set:
        items = _expect_list(value, where)
        return frozenset(_decode(args[0], item, where) for item in items)

    if origin is Mapping or origin is dict:
        if not isinstance(value, dict):
            raise ValueError(f"{where} must be a JSON object.")
        key_hint, value_hint = args
        mapping = cast(dict[object, object], value)
        return {
            _decode_key(key_hint, key, where): _decode(value_hint, item, where) for key, item in mapping.items()
        }

    if isinstance(hint, type) and issubclass(hint, Enum):
        try:
            return hint(value)
        except ValueError:
            raise ValueError(f"{where}: unknown {hint.__name__} value {value!r}.") from None

    if isinstance(hint, type) and is_dataclass(hint):
        return from_dict(hint, value)

    if hint is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{where} must be a boolean.")
        return value
    if hint is int:
        coerced = _coerce_int(value)
        if coerced is None:
            raise ValueError(f"{where} must be an integer.")
        return coerced
    if hint is float:
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ValueError(f"{where} must be a number.")
        return float(value)
    if hint is str:
        if not isinstance(value, str):
            raise ValueError(f"{where} must be a string.")
        return value

    raise ValueError(f"{where}: unsupported field type {hint!r}.")


def _decode_key(hint: Any, key: object, where: str) -> Any:
    if hint is int and isinstance(key, str):
        coerced = _coerce_int(key)
        if coerced is None:
            raise ValueError(f"{where}: key {key!r} must be an integer.")
        return coerced
    return _decode(hint, key, where)


def _expect_list(value: object, where: str) -> list[object]:
    if not isinstance(value, list | tuple):
        raise ValueError(f"{where} must be a JSON array.")
    return list(cast(list[object], value))


def _coerce_int(value: object) -> int | None:
    """Coerce whole numbers and numeric strings; reject booleans and fractions."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def event_tag(event_type: type) -> str:
    """Return snake_case tag for an event class, e.g. ``PlaceWord`` -> ``place_word``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", event_type.__name__).lower()


def event_to_dict(event: object) -> dict[str, object]:
    """Encode an event with its variant tag."""
    return {"type": event_tag(type(event)), **to_dict(event)}


def event_from_dict(mode: str, raw: object) -> Any:
    """Rebuild an event of `mode` from its tagged dict."""
    _, event_types = _mode_entry(mode)
    if not isinstance(raw, dict):
        raise ValueError("Event payload must be a JSON object.")
    payload = dict(cast(dict[str, object], raw))
    tag = payload.pop("type", None)
    for event_type in event_types:
        if event_tag(event_type) == tag:
            return from_dict(event_type, payload)
    raise ValueError(f"Unknown {mode} event type: {tag!r}.")


def mode_for_state(state: object) -> str:
    """Return the game mode name for a state record."""
    for mode, (state_type, _) in MODES.items():
        if isinstance(state, state_type):
            return mode
    raise ValueError(f"Not a game state: {type(state).__name__}.")


def dump_session(state: object) -> str:
    """Serialize a game state into a versioned JSON envelope."""
    payload = {
        "format_version": FORMAT_VERSION,
        "mode": mode_for_state(state),
        "state": to_dict(state),
    }
    return json.dumps(payload, indent=2)


def load_session(text: str) -> tuple[str, Any]:
    """Parse a JSON envelope written by `dump_session` into (mode, state)."""
    try:
        raw_obj: object = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Session payload is not valid JSON: {exc.msg}.") from None
    if not isinstance(raw_obj, dict):
        raise ValueError("Session payload root must be a JSON object.")
    raw = cast(dict[str, object], raw_obj)

    format_version = _coerce_int(raw.get("format_version", 0))
    if format_version is None:
        raise ValueError("Session payload has invalid format_version.")
    if format_version > FORMAT_VERSION:
        raise ValueError(f"Session format version {format_version} is newer than supported {FORMAT_VERSION}.")

    mode = raw.get("mode")
    if not isinstance(mode, str):
        raise ValueError("Session payload has no mode.")
    state_type, _ = _mode_entry(mode)
    state = from_dict(state_type, raw.get("state", {}))
    logger.debug(f"Restored {mode} session (format {format_version}).")
    return mode, state


def _mode_entry(mode: str) -> tuple[type, tuple[type, ...]]:
    try:
        return MODES[mode]
    except KeyError:
        raise ValueError(f"Unknown game mode: {mode!r}.") from None
