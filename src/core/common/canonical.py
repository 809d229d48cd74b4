import hashlib
import json
from collections.abc import Mapping
from typing import Any

CACHE_KEY_HEX_LENGTH = 64
CACHE_KEY_VERSION_LENGTH = 8


class SerializationError(ValueError):
    """Raised when a payload cannot be canonically serialized."""


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def canonical_projection_json(projection_input: Any) -> str:
    """
    Serialize a projection input with its top-level keys in lexicographic order.

    Nested mappings keep their insertion order. Values that JSON cannot represent
    (cycles, callables, sets, NaN/Infinity) and non-string keys at any depth
    raise SerializationError.
    """
    try:
        _ensure_string_keys(projection_input, active=set())
    except RecursionError as exc:
        raise SerializationError(f"projection input is not JSON serializable: {exc}") from exc
    if isinstance(projection_input, Mapping):
        payload: Any = {key: projection_input[key] for key in sorted(projection_input)}
    else:
        payload = projection_input

    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(f"projection input is not JSON serializable: {exc}") from exc


def _ensure_string_keys(value: Any, *, active: set[int]) -> None:
    # json.dumps would coerce 1, 1.0 and True to "1", "1.0" and "true".
    if isinstance(value, Mapping):
        children: Any = value.values()
        for key in value:
            if not isinstance(key, str):
                raise SerializationError(
                    f"projection input keys must be strings, got {type(key).__name__}"
                )
    elif isinstance(value, (list, tuple)):
        children = value
    else:
        return
    if id(value) in active:
        raise SerializationError("projection input is not JSON serializable: circular reference")
    active.add(id(value))
    for child in children:
        _ensure_string_keys(child, active=active)
    active.discard(id(value))


def compute_cache_key(projection_input: Any) -> str:
    canonical = canonical_projection_json(projection_input)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def cache_key_version(cache_key: str) -> str:
    return cache_key[:CACHE_KEY_VERSION_LENGTH]
