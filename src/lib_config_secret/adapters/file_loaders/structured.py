"""Structured document loaders.

Purpose
-------
Turn the files referenced by secret pointers (and plain configuration files)
into Python mappings. Each loader is a thin wrapper around ``tomllib``,
``json`` or ``yaml.safe_load`` so error handling and logging live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`TOMLFileLoader` / :class:`JSONFileLoader` / :class:`YAMLFileLoader` –
  one loader per format.
* :class:`StructuredDocumentLoader` – picks a loader from the file suffix and
  sniffs the content when the suffix is unknown (secret mounts such as
  ``/run/secrets/db`` rarely carry one).

System Role
-----------
:class:`StructuredDocumentLoader` is the default document loader of
:class:`lib_config_secret.adapters.env.secret.EnvironmentSecretFile` and
:class:`lib_config_secret.core.FileSource`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...domain.errors import InvalidFormat, NotFound
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    format = "unknown"

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing."""

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Configuration file not found: {path}")
        try:
            payload = file_path.read_bytes()
        except OSError as exc:
            log_error("config_file_unreadable", layer="file", path=path, error=str(exc))
            raise NotFound(f"Configuration file not readable: {path}: {exc}") from exc
        log_debug("config_file_read", path=path, layer="file", size=len(payload))
        return payload

    def load(self, path: str) -> Mapping[str, object]:
        """Read and parse *path*; subclasses implement :meth:`parse`."""

        payload = self._read(path)
        try:
            result = self.parse(payload, path=path)
        except InvalidFormat as exc:
            log_error("config_file_invalid", layer="file", path=path, format=self.format, error=str(exc))
            raise
        log_debug("config_file_loaded", layer="file", path=path, format=self.format)
        return result

    def parse(self, payload: bytes, *, path: str) -> Mapping[str, object]:  # pragma: no cover - abstract
        raise NotImplementedError

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> BaseFileLoader._ensure_mapping([1, 2], path="demo")
        Traceback (most recent call last):
        ...
        lib_config_secret.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data  # type: ignore[return-value]

    def _invalid(self, path: str, exc: Exception) -> InvalidFormat:
        return InvalidFormat(f"Invalid {self.format.upper()} in {path}: {exc}")


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser.

    Examples
    --------
    >>> from tempfile import NamedTemporaryFile
    >>> tmp = NamedTemporaryFile('w', suffix='.toml', delete=False, encoding='utf-8')
    >>> _ = tmp.write('[server]\\nport = 5000')
    >>> tmp.close()
    >>> TOMLFileLoader().load(tmp.name)["server"]["port"]
    5000
    >>> Path(tmp.name).unlink()
    """

    format = "toml"

    def parse(self, payload: bytes, *, path: str) -> Mapping[str, object]:
        try:
            data = tomllib.loads(payload.decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(path, exc) from exc
        return self._ensure_mapping(data, path=path)


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    format = "json"

    def parse(self, payload: bytes, *, path: str) -> Mapping[str, object]:
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(path, exc) from exc
        return self._ensure_mapping(data, path=path)


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents with ``yaml.safe_load``; an empty document is ``{}``."""

    format = "yaml"

    def parse(self, payload: bytes, *, path: str) -> Mapping[str, object]:
        try:
            data = yaml.safe_load(payload)
        except yaml.YAMLError as exc:
            raise self._invalid(path, exc) from exc
        if data is None:
            data = {}
        return self._ensure_mapping(_stringify_keys(data), path=path)


def _stringify_keys(value: object) -> object:
    """Return *value* with every mapping key converted to ``str``, recursively.

    YAML allows ``8080: http`` or ``true: on``; configuration keys are always
    strings.

    Examples
    --------
    >>> _stringify_keys({8080: "http", "ports": [{80: "web"}]})
    {'8080': 'http', 'ports': [{'80': 'web'}]}
    """

    if isinstance(value, Mapping):
        return {str(key): _stringify_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify_keys(item) for item in value]
    return value


class StructuredDocumentLoader(BaseFileLoader):
    """Load any supported document, choosing the parser by suffix or by content.

    Known suffixes (``.toml``, ``.json``, ``.yaml``, ``.yml``) pick their
    loader directly, so a malformed ``.json`` file fails as JSON. Files without
    a known suffix are tried as JSON, TOML, then YAML; the first parser that
    yields a mapping wins.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> secret = Path(tmp.name) / "db"
    >>> _ = secret.write_text('{"password": "hunter2"}', encoding="utf-8")
    >>> StructuredDocumentLoader().load(str(secret))["password"]
    'hunter2'
    >>> tmp.cleanup()
    """

    format = "auto"

    def __init__(self, loaders: Mapping[str, BaseFileLoader] | None = None) -> None:
        self._loaders: dict[str, BaseFileLoader] = dict(loaders) if loaders is not None else default_loaders()

    def load(self, path: str) -> Mapping[str, object]:
        loader = self._loaders.get(Path(path).suffix.lower())
        if loader is not None:
            return loader.load(path)
        return self._sniff(path)

    def _sniff(self, path: str) -> Mapping[str, object]:
        payload = self._read(path)
        failures: list[str] = []
        for candidate in _SNIFF_ORDER:
            try:
                data = candidate.parse(payload, path=path)
            except InvalidFormat as exc:
                failures.append(str(exc))
                continue
            log_debug("config_file_loaded", layer="file", path=path, format=candidate.format, detected=True)
            return data
        log_error("config_file_invalid", layer="file", path=path, format="auto", error="; ".join(failures))
        raise InvalidFormat(f"Unsupported or malformed configuration file {path}: no parser produced a mapping")


def default_loaders() -> dict[str, BaseFileLoader]:
    """Return the suffix-to-loader table used by :class:`StructuredDocumentLoader`."""

    yaml_loader = YAMLFileLoader()
    return {
        ".toml": TOMLFileLoader(),
        ".json": JSONFileLoader(),
        ".yaml": yaml_loader,
        ".yml": yaml_loader,
    }


_SNIFF_ORDER: tuple[BaseFileLoader, ...] = (JSONFileLoader(), TOMLFileLoader(), YAMLFileLoader())
