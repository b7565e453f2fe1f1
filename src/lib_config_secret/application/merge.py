"""Application-layer merge policy.

Purpose
-------
Convert a sequence of layer payloads into a single configuration mapping while
tracking provenance. Free of I/O so it can be reused by any composition root.

Contents
    - ``merge_layers``: public entry point driven by a simple loop.
    - ``DefaultMerger``: :class:`~lib_config_secret.application.ports.Merger`
      implementation delegating to ``merge_layers``.
    - ``_merge_layer`` / ``_merge_mapping``: recursive stanzas that keep
      precedence logic readable.
    - ``_set_scalar`` / ``_merge_branch`` / ``_clear_branch``: helpers that
      narrate how provenance is updated when values change.

System Role
-----------
Receives ``(layer, payload, path)`` tuples from
:class:`lib_config_secret.core.ConfigBuilder`. Top-level dotted keys such as
``"b.a"`` (what the secret source emits when a separator is configured) are
expanded into nested tables, and :class:`~lib_config_secret.domain.config.TaggedTable`
values are unwrapped into plain dictionaries with their origin copied into the
provenance entries of every leaf below them.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Iterable

from ..domain.config import TaggedTable


def merge_layers(
    layers: Iterable[tuple[str, Mapping[str, object], str | None]],
) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
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
        ``{"layer", "path", "key", "origin"}``.

    Examples
    --------
    >>> merged, meta = merge_layers([
    ...     ("file", {"server": {"port": 5000}}, "app.toml"),
    ...     ("secret", {"server.port": 6000}, None),
    ... ])
    >>> merged["server"]["port"], meta["server.port"]["layer"]
    (6000, 'secret')
    """

    merged: dict[str, object] = {}
    meta: dict[str, dict[str, object]] = {}

    for layer_name, data, path in layers:
        _merge_layer(merged, meta, data, layer_name, path)
    return merged, meta


class DefaultMerger:
    """Port adapter around :func:`merge_layers`."""

    def merge(
        self, layers: Iterable[tuple[str, Mapping[str, object], str | None]]
    ) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
        return merge_layers(layers)


def _merge_layer(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    payload: Mapping[str, object],
    layer: str,
    path: str | None,
) -> None:
    """Merge a single *payload* into *target*, expanding dotted top-level keys."""

    for key, value in payload.items():
        nested = _expand_dotted(key, deepcopy(value))
        _merge_mapping(target, meta, nested, layer, path, None, [])


def _expand_dotted(key: str, value: object) -> dict[str, object]:
    """Turn ``("b.a", value)`` into ``{"b": {"a": value}}``.

    Examples
    --------
    >>> _expand_dotted("b.a", 1)
    {'b': {'a': 1}}
    >>> _expand_dotted("plain", 1)
    {'plain': 1}
    """

    parts = [part for part in key.split(".") if part] or [key]
    expanded: object = value
    for part in reversed(parts[1:]):
        expanded = {part: expanded}
    return {parts[0]: expanded}


def _merge_mapping(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    incoming: Mapping[str, object],
    layer: str,
    path: str | None,
    origin: str | None,
    segments: list[str],
) -> None:
    """Recursively merge ``incoming`` into ``target`` while recording provenance."""

    for key, value in incoming.items():
        dotted = _dotted_key(segments, key)
        if isinstance(value, TaggedTable):
            branch_path = value.path if value.path is not None else path
            _merge_branch(target, meta, key, value, dotted, layer, branch_path, value.origin, segments)
        elif isinstance(value, Mapping):
            _merge_branch(target, meta, key, value, dotted, layer, path, origin, segments)
        else:
            _set_scalar(target, meta, key, value, dotted, layer, path, origin)


def _merge_branch(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    key: str,
    value: Mapping[str, object],
    dotted: str,
    layer: str,
    path: str | None,
    origin: str | None,
    segments: list[str],
) -> None:
    """Merge mapping ``value`` into ``target[key]`` and recurse."""

    existing = target.get(key)
    if not value:
        if isinstance(existing, Mapping) and not segments:
            return
        _clear_branch(meta, dotted)
        target[key] = {}
        return

    if isinstance(existing, Mapping):
        container: dict[str, object] = dict(existing)
        created_new = False
    else:
        _clear_branch(meta, dotted)
        container = {}
        created_new = True

    target[key] = container
    _merge_mapping(container, meta, dict(value), layer, path, origin, segments + [key])
    if created_new and not container:
        target.pop(key, None)


def _set_scalar(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    key: str,
    value: object,
    dotted: str,
    layer: str,
    path: str | None,
    origin: str | None,
) -> None:
    """Assign a scalar value and update provenance for ``dotted``."""

    _clear_branch(meta, dotted)
    target[key] = value
    meta[dotted] = {"layer": layer, "path": path, "key": dotted, "origin": origin}


def _clear_branch(meta: dict[str, dict[str, object]], prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)


def _dotted_key(segments: list[str], key: str) -> str:
    return ".".join([*segments, key]) if segments else key
