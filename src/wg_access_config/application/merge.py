"""Application-layer merge policy.

Purpose
-------
Combine the built-in defaults, the flag/environment layer, and the sparse file
patch into one mapping while tracking which layer supplied each key. The module
is free of I/O so every precedence layer can be tested in isolation.

Contents
    - ``merge_sources``: the three-layer entry point used by the assembler.
    - ``merge_layers``: generic loop over ``(layer, mapping, path)`` tuples.
    - ``_merge_mapping`` / ``_merge_branch`` / ``_set_value``: recursive stanzas
      that only touch keys present in the incoming layer.

System Role
-----------
Receives layers from :mod:`wg_access_config.core`, applies precedence
(``default → flags → file``), and returns the data consumed by
:meth:`wg_access_config.domain.config.ResolvedConfig.from_mapping`.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Iterable

Provenance = dict[str, dict[str, object]]


def merge_sources(
    defaults: Mapping[str, object],
    sources: Mapping[str, object],
    file_patch: Mapping[str, object],
    *,
    file_path: str | None = None,
) -> tuple[dict[str, object], Provenance]:
    """Merge the three configuration layers, lowest precedence first.

    Why
    ----
    The configuration file overrides flags and environment variables, yet a
    key omitted from the file must keep the flag/env value rather than revert
    to the built-in default. Applying each layer as a sparse patch makes that
    rule explicit.

    Parameters
    ----------
    defaults:
        Built-in defaults (:func:`wg_access_config.domain.schema.defaults_layer`).
    sources:
        Flag/environment layer (:meth:`wg_access_config.domain.sources.SourceBundle.as_layer`).
    file_patch:
        Validated file document (:func:`wg_access_config.application.patch.build_patch`).
    file_path:
        Recorded in provenance for keys the file supplied.

    Examples
    --------
    >>> merged, meta = merge_sources(
    ...     {"wireguard": {"interfaceName": "wg0", "port": 51820}},
    ...     {},
    ...     {"wireguard": {"port": 1234}},
    ...     file_path="config.yaml",
    ... )
    >>> merged["wireguard"]
    {'interfaceName': 'wg0', 'port': 1234}
    >>> meta["wireguard.port"]["layer"], meta["wireguard.interfaceName"]["layer"]
    ('file', 'default')
    """

    return merge_layers(
        [
            ("default", defaults, None),
            ("flags", sources, None),
            ("file", file_patch, file_path),
        ]
    )


def merge_layers(
    layers: Iterable[tuple[str, Mapping[str, object], str | None]],
) -> tuple[dict[str, object], Provenance]:
    """Merge configuration *layers* honouring precedence and provenance.

    Parameters
    ----------
    layers:
        Iterable of ``(layer_name, mapping, source_path)`` tuples ordered from
        lowest to highest precedence.

    Returns
    -------
    tuple[dict[str, object], dict[str, dict[str, object]]]
        ``(merged_data, provenance)`` where ``provenance`` maps dotted keys to
        ``{"layer", "path", "key"}``.

    Examples
    --------
    >>> merged, meta = merge_layers([
    ...     ("default", {"dns": {"upstream": []}}, None),
    ...     ("flags", {"dns": {"upstream": ["1.1.1.1"]}}, None),
    ... ])
    >>> merged["dns"]["upstream"], meta["dns.upstream"]["layer"]
    (['1.1.1.1'], 'flags')
    """

    merged: dict[str, object] = {}
    meta: Provenance = {}
    for layer_name, data, path in layers:
        _merge_mapping(merged, meta, deepcopy(dict(data)), layer_name, path, [])
    return merged, meta


def _merge_mapping(
    target: dict[str, object],
    meta: Provenance,
    incoming: Mapping[str, object],
    layer: str,
    path: str | None,
    segments: list[str],
) -> None:
    """Recursively merge ``incoming`` into ``target``; absent keys stay untouched."""

    for key, value in incoming.items():
        dotted = ".".join([*segments, key])
        if isinstance(value, Mapping):
            _merge_branch(target, meta, key, value, layer, path, segments)
        else:
            _set_value(target, meta, key, value, dotted, layer, path)


def _merge_branch(
    target: dict[str, object],
    meta: Provenance,
    key: str,
    value: Mapping[str, object],
    layer: str,
    path: str | None,
    segments: list[str],
) -> None:
    """Merge mapping ``value`` into ``target[key]`` and recurse.

    An empty incoming group never erases an existing one; when nothing exists
    yet it creates the group, which is how ``auth.basic: {}`` enables a backend.
    """

    existing = target.get(key)
    if isinstance(existing, Mapping):
        container: dict[str, object] = dict(existing)
    else:
        _clear_branch(meta, ".".join([*segments, key]))
        container = {}
    target[key] = container
    _merge_mapping(container, meta, value, layer, path, segments + [key])


def _set_value(
    target: dict[str, object],
    meta: Provenance,
    key: str,
    value: object,
    dotted: str,
    layer: str,
    path: str | None,
) -> None:
    """Assign a scalar or list value and update provenance for ``dotted``."""

    _clear_branch(meta, dotted)
    target[key] = value
    meta[dotted] = {"layer": layer, "path": path, "key": dotted}


def _clear_branch(meta: Provenance, prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)
