"""Domain-level configuration value objects.

Purpose
-------
Hold the immutable objects that carry loaded secrets and merged configuration
through the system. This module contains no I/O.

Contents
--------
* :class:`TaggedTable` – read-only mapping wrapping a loaded document together
  with its ``secret:<key>:<path>`` origin annotation.
* :class:`SourceInfo` – provenance record for a merged key.
* :class:`Config` – ``Mapping`` implementation returned by the layered builder,
  with dotted-path lookups, provenance, and functional overrides.
* :data:`EMPTY_CONFIG` – canonical empty instance.

System Role
-----------
:class:`lib_config_secret.adapters.env.secret.EnvironmentSecretFile` emits
:class:`TaggedTable` values; :func:`lib_config_secret.application.merge.merge_layers`
unwraps them into plain dictionaries while copying the origin into
:class:`SourceInfo` entries; :class:`lib_config_secret.core.ConfigBuilder`
finally wraps everything in a :class:`Config`.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping as MappingType, TypedDict, TypeVar, overload


@dataclass(frozen=True, eq=False)
class TaggedTable(MappingABC[str, Any]):
    """Loaded secret document annotated with the place it came from.

    Why
    ----
    A nested secret must stay a plain table for the merge algorithm while still
    telling diagnostics which variable and file produced it.

    Attributes
    ----------
    data:
        Parsed document returned by the document loader.
    origin:
        Annotation of the form ``secret:<derived key>:<file path>``.
    path:
        File path the document was read from.

    Examples
    --------
    >>> table = TaggedTable({"user": "admin"}, origin="secret:db:/run/secrets/db.json")
    >>> table["user"], table.origin
    ('admin', 'secret:db:/run/secrets/db.json')
    >>> table == {"user": "admin"}
    True
    """

    data: Mapping[str, Any]
    origin: str
    path: str | None = field(default=None)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"TaggedTable({dict(self.data)!r}, origin={self.origin!r})"


class SourceInfo(TypedDict):
    """Describe the origin of a resolved configuration key.

    Attributes
    ----------
    layer:
        Logical layer name (``"defaults"``, ``"file"``, ``"secret"``,
        ``"overrides"``).
    path:
        Filesystem path that produced the key, ``None`` for in-memory values.
    key:
        Fully qualified dotted key (for example ``"redis.nodes"``).
    origin:
        ``secret:<key>:<path>`` annotation when the value came from a nested
        secret table, otherwise ``None``.
    """

    layer: str
    path: str | None
    key: str
    origin: str | None


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Config(MappingABC[str, Any]):
    """Immutable mapping returned by :class:`lib_config_secret.core.ConfigBuilder`.

    Why
    ----
    Applications want a read-only dictionary-like view of their settings,
    including secrets, plus a way to ask where a given key came from.

    Examples
    --------
    >>> cfg = Config(
    ...     {"db": {"password": "hunter2", "host": "db.local"}},
    ...     {
    ...         "db.password": {"layer": "secret", "path": "/run/secrets/db.json", "key": "db.password",
    ...                         "origin": "secret:db:/run/secrets/db.json"},
    ...     },
    ... )
    >>> cfg.get("db.host")
    'db.local'
    >>> cfg.origin("db.password")["origin"]
    'secret:db:/run/secrets/db.json'
    >>> cfg.with_overrides({"db": {"host": "other"}}).get("db.host")
    'other'
    """

    _data: Mapping[str, Any]
    _meta: Mapping[str, SourceInfo]

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", _freeze_mapping(self._data))
        object.__setattr__(self, "_meta", _freeze_mapping(self._meta))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def as_dict(self) -> dict[str, Any]:
        """Return a deep, mutable ``dict`` copy of the configuration tree.

        Examples
        --------
        >>> cfg = Config({"server": {"port": 5000}}, {})
        >>> clone = cfg.as_dict()
        >>> clone["server"]["port"] = 1
        >>> cfg.get("server.port")
        5000
        """

        return _deepcopy_mapping(self._data)

    def provenance(self) -> dict[str, SourceInfo]:
        """Return a copy of the provenance map keyed by dotted path."""

        return {key: dict(info) for key, info in self._meta.items()}  # type: ignore[misc]

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the configuration to JSON.

        Examples
        --------
        >>> Config({"server": {"port": 5000}}, {}).to_json()
        '{"server":{"port":5000}}'
        """

        import json

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False)

    @overload
    def get(self, key: str, *, default: T) -> T:  # type: ignore[override]
        ...

    @overload
    def get(self, key: str, *, default: None = ...) -> Any | None:  # type: ignore[override]
        ...

    def get(self, key: str, *, default: Any = None) -> Any:
        """Resolve *key* as a dotted path and return ``default`` when missing.

        Examples
        --------
        >>> cfg = Config({"redis": {"nodes": ["redis://a"]}}, {})
        >>> cfg.get("redis.nodes")
        ['redis://a']
        >>> cfg.get("redis.password", default="none")
        'none'
        """

        return _resolve_dotted_path(self._data, key, default)

    def origin(self, key: str) -> SourceInfo | None:
        """Return provenance for *key* or ``None`` when no layer produced it."""

        return self._meta.get(key)

    def with_overrides(self, overrides: Mapping[str, Any]) -> Config:
        """Return a copy with top-level *overrides* applied, sharing provenance."""

        updated = dict(self._data)
        updated.update(overrides)
        return Config(updated, self._meta)


def _freeze_mapping(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


def _resolve_dotted_path(source: Mapping[str, Any], dotted: str, default: Any) -> Any:
    current: Any = source
    for part in dotted.split("."):
        if not isinstance(current, MappingABC) or part not in current:
            return default
        current = current[part]
    return current


def _deepcopy_mapping(mapping: MappingType[str, Any]) -> dict[str, Any]:
    """Recursively clone *mapping* into plain dictionaries.

    ``copy.deepcopy`` cannot clone the ``mappingproxy`` objects used by
    :class:`Config`, hence the hand-written walk.
    """

    return {key: _deepcopy_value(value) for key, value in mapping.items()}


def _deepcopy_value(value: Any) -> Any:
    if isinstance(value, MappingABC):
        return _deepcopy_mapping(value)
    if isinstance(value, list):
        return [_deepcopy_value(item) for item in value]
    if isinstance(value, (set, tuple)):
        return type(value)(_deepcopy_value(item) for item in value)
    return value


EMPTY_CONFIG = Config(MappingProxyType({}), MappingProxyType({}))
"""Canonical empty configuration returned when no source produced content."""
