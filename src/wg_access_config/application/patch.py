"""Turn a parsed configuration document into a sparse, validated patch.

Purpose
-------
Binding a document onto the configuration must only overwrite the fields the
document actually defines. This module walks the parsed document against
:data:`wg_access_config.domain.schema.FIELD_TYPES` and returns a nested mapping
holding exactly those fields, already checked for type.

Rules
-----
* A known leaf must carry its declared type. Integers and floats are accepted
  for string fields and stringified; booleans never are.
* ``null`` leaves the field untouched, for leaves and groups alike.
* A group must be a mapping. An empty backend group (``auth.basic: {}``) is
  kept because its presence enables the backend.
* Unknown keys are dropped and reported at debug level.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..domain.errors import InvalidFormat
from ..domain.schema import FIELD_TYPES, GROUPS
from ..observability import log_debug


def build_patch(document: Mapping[str, object], *, path: str | None = None) -> dict[str, object]:
    """Return the sparse patch described by *document*.

    Raises
    ------
    InvalidFormat
        When a known key carries a value of the wrong type.

    Examples
    --------
    >>> build_patch({"wireguard": {"port": 1234, "privateKey": None}, "extra": 1})
    {'wireguard': {'port': 1234}}
    >>> build_patch({"auth": {"basic": {}}})
    {'auth': {'basic': {}}}
    >>> build_patch({"wireguard": {"port": "fast"}})
    Traceback (most recent call last):
    ...
    wg_access_config.domain.errors.InvalidFormat: wireguard.port: expected an integer, got str
    """

    return _walk(document, [], path)


def _walk(node: Mapping[str, object], segments: list[str], path: str | None) -> dict[str, object]:
    patch: dict[str, object] = {}
    for raw_key, value in node.items():
        key = str(raw_key)
        dotted = ".".join([*segments, key])
        if value is None:
            continue
        if dotted in FIELD_TYPES:
            patch[key] = _coerce(dotted, value, FIELD_TYPES[dotted])
        elif dotted in GROUPS:
            if not isinstance(value, Mapping):
                raise InvalidFormat(f"{dotted}: expected a mapping, got {type(value).__name__}")
            patch[key] = _walk(value, [*segments, key], path)
        else:
            log_debug("config_file_unknown_key", layer="file", path=path, key=dotted)
    return patch


def _coerce(dotted: str, value: object, expected: type) -> object:
    """Check *value* against *expected*, normalising where the binding rules allow."""

    if expected is bool:
        if isinstance(value, bool):
            return value
        raise InvalidFormat(f"{dotted}: expected a boolean, got {type(value).__name__}")
    if expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise InvalidFormat(f"{dotted}: expected an integer, got {type(value).__name__}")
    if expected is str:
        return _as_string(dotted, value)
    if isinstance(value, (list, tuple)):
        return [_as_string(f"{dotted}[{index}]", item) for index, item in enumerate(value)]
    raise InvalidFormat(f"{dotted}: expected a list, got {type(value).__name__}")


def _as_string(dotted: str, value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise InvalidFormat(f"{dotted}: expected a string, got {type(value).__name__}")
