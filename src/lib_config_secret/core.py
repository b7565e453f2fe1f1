"""Composition root for ``lib_config_secret``.

Purpose
-------
Wire sources (structured files, the secret environment source, in-memory
defaults and overrides) into the merge policy and return an immutable
:class:`~lib_config_secret.domain.config.Config`.

Contents
--------
* :class:`LayerLoadError` – raised when a source fails to materialise.
* :class:`FileSource` – a single structured file as a builder source.
* :class:`MappingSource` – in-memory values as a builder source.
* :class:`ConfigBuilder` – layered builder (defaults < sources < overrides).
* :func:`read_secrets` – one-call helper building a ``Config`` from the
  secret environment source alone.

System Role
-----------
The only module that knows about concrete adapters. Applications that already
own a layered configuration system can skip it and call
:meth:`EnvironmentSecretFile.collect` directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .adapters.env.secret import EnvironmentSecretFile
from .adapters.file_loaders.structured import StructuredDocumentLoader
from .application.merge import DefaultMerger
from .application.ports import FileLoader, Merger, Source
from .domain.config import EMPTY_CONFIG, Config, TaggedTable
from .domain.errors import ConfigError, InvalidFormat, NotFound
from .observability import bind_trace_id, log_debug, log_info, make_event


class LayerLoadError(ConfigError):
    """Raised when a builder source cannot be materialised.

    Wraps the adapter exception (available as ``__cause__``) with the layer
    name so callers can tell which source failed.
    """


@dataclass(frozen=True)
class FileSource:
    """Structured configuration file contributing one layer.

    Parameters
    ----------
    path:
        File to load; the format is detected by :class:`StructuredDocumentLoader`.
    required:
        When ``False`` a missing file contributes nothing instead of failing.
    """

    path: str
    required: bool = True
    layer: str = "file"
    loader: FileLoader = field(default_factory=StructuredDocumentLoader, compare=False, repr=False)

    def collect(self) -> Mapping[str, object]:
        try:
            return self.loader.load(self.path)
        except NotFound:
            if self.required:
                raise
            log_debug("layer_skipped", **make_event(self.layer, self.path, {"reason": "missing"}))
            return {}


@dataclass(frozen=True)
class MappingSource:
    """In-memory mapping contributing one layer (defaults, overrides, tests)."""

    values: Mapping[str, object]
    layer: str = "memory"
    path: str | None = None

    def collect(self) -> Mapping[str, object]:
        return dict(self.values)


class ConfigBuilder:
    """Collect layers from several sources and merge them into a :class:`Config`.

    Precedence, lowest to highest: values registered with
    :meth:`set_default`, sources in the order they were added (the last one
    wins on conflicts), values registered with :meth:`set_override`. Dotted
    top-level keys such as ``"b.a"`` are expanded into nested tables.

    Examples
    --------
    >>> cfg = (
    ...     ConfigBuilder()
    ...     .set_default("server.port", 8080)
    ...     .add_source(MappingSource({"server": {"host": "0.0.0.0"}}))
    ...     .set_override("server.port", 5000)
    ...     .build()
    ... )
    >>> cfg.get("server.host"), cfg.get("server.port")
    ('0.0.0.0', 5000)
    >>> cfg.origin("server.port")["layer"]
    'overrides'
    """

    def __init__(self, *, merger: Merger | None = None) -> None:
        self._merger: Merger = merger or DefaultMerger()
        self._defaults: dict[str, Any] = {}
        self._sources: list[Source] = []
        self._overrides: dict[str, Any] = {}

    def add_source(self, source: Source) -> ConfigBuilder:
        self._sources.append(source)
        return self

    def set_default(self, key: str, value: Any) -> ConfigBuilder:
        self._defaults[key] = value
        return self

    def set_override(self, key: str, value: Any) -> ConfigBuilder:
        self._overrides[key] = value
        return self

    def build(self) -> Config:
        """Collect every source and return the merged :class:`Config`.

        Raises
        ------
        LayerLoadError
            When any source fails; the original error is chained.
        """

        data, meta = self.build_raw()
        if not data:
            return EMPTY_CONFIG
        return Config(data, meta)  # type: ignore[arg-type]

    def build_raw(self) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
        """Return ``(merged_data, provenance)`` without wrapping in :class:`Config`."""

        bind_trace_id(None)

        sources: list[Source] = []
        if self._defaults:
            sources.append(MappingSource(self._defaults, layer="defaults"))
        sources.extend(self._sources)
        if self._overrides:
            sources.append(MappingSource(self._overrides, layer="overrides"))

        layers: list[tuple[str, Mapping[str, object], str | None]] = []
        for source in sources:
            payload = _collect(source)
            if payload:
                log_debug("layer_loaded", **make_event(source.layer, source.path, {"keys": len(payload)}))
                layers.append((source.layer, payload, source.path))

        if not layers:
            log_info("configuration_empty", layer="none", path=None)
            return {}, {}

        merged, meta = self._merger.merge(layers)
        log_info("configuration_merged", layer="final", path=None, total_layers=len(layers))
        return dict(merged), dict(meta)


def read_secrets(
    prefix: str | None = None,
    *,
    separator: str | None = None,
    prefix_separator: str | None = None,
    suffix: str | None = None,
    suffix_separator: str | None = None,
    keep_prefix: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Build a :class:`Config` from secret-file pointers in the environment.

    Keyword arguments mirror the builder methods of
    :class:`EnvironmentSecretFile`. *environ* defaults to :data:`os.environ`.

    Examples
    --------
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> secret = Path(tmp.name) / "db.toml"
    >>> _ = secret.write_text('password = "hunter2"', encoding="utf-8")
    >>> cfg = read_secrets("APP", separator="_", environ={"APP_MAIN_DB_FILE": str(secret)})
    >>> cfg.get("main.db.password")
    'hunter2'
    >>> tmp.cleanup()
    """

    source = secret_source(
        prefix,
        separator=separator,
        prefix_separator=prefix_separator,
        suffix=suffix,
        suffix_separator=suffix_separator,
        keep_prefix=keep_prefix,
    )
    return ConfigBuilder().add_source(source.with_environ(environ)).build()


def secret_source(
    prefix: str | None = None,
    *,
    separator: str | None = None,
    prefix_separator: str | None = None,
    suffix: str | None = None,
    suffix_separator: str | None = None,
    keep_prefix: bool = False,
) -> EnvironmentSecretFile:
    """Translate keyword options into a configured :class:`EnvironmentSecretFile`."""

    source = EnvironmentSecretFile() if prefix is None else EnvironmentSecretFile.with_prefix(prefix)
    if separator is not None:
        source = source.separator(separator)
    if prefix_separator is not None:
        source = source.prefix_separator(prefix_separator)
    if suffix is not None:
        source = source.suffix(suffix)
    if suffix_separator is not None:
        source = source.suffix_separator(suffix_separator)
    return source.keep_prefix(keep_prefix)


def _collect(source: Source) -> Mapping[str, object]:
    try:
        return source.collect()
    except (InvalidFormat, NotFound) as exc:
        log_debug("layer_error", layer=source.layer, path=source.path, error=str(exc))
        raise LayerLoadError(f"Failed to load {source.layer} layer: {exc}") from exc


__all__ = [
    "Config",
    "ConfigBuilder",
    "ConfigError",
    "FileSource",
    "InvalidFormat",
    "LayerLoadError",
    "MappingSource",
    "NotFound",
    "TaggedTable",
    "EnvironmentSecretFile",
    "read_secrets",
    "secret_source",
]
