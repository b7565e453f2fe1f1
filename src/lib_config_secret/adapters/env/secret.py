"""Secret-file environment source.

Purpose
-------
Scan the process environment for variables that point at secret files,
load those files through a document loader, and attach their contents to a
configuration tree under a key derived from the variable name.

Key behaviours
--------------
* ``<PREFIX>_<KEY>_FILE=/path`` loads ``/path`` and nests it under ``key``.
  With a separator configured, ``<PREFIX>_<A>_<B>_FILE`` yields the dotted
  key ``a.b``.
* The *full pattern* (``<PREFIX>_FILE``, or ``FILE`` without a prefix) loads
  the file and merges its top-level keys directly into the result.
* Matching is case-insensitive: the variable name and every pattern are
  lower-cased before comparison. The file path is used verbatim.
* Empty values are treated as unset. Variables that do not match are skipped
  silently.
* The first loader failure aborts the whole call; no partial tree escapes.

Contents
--------
* :class:`EnvironmentSecretFile` – immutable, builder-style source.
* :class:`SecretPatterns` – patterns derived from a source's options.
* :class:`MatchKind` / :class:`SecretMatch` – classification of one variable.
* :func:`derive_patterns` / :func:`extract_key` – the pure matching steps.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Mapping, cast

from ...application.ports import FileLoader
from ...domain.config import TaggedTable
from ...domain.errors import ConfigError
from ...observability import log_debug, log_error, log_info
from ..file_loaders.structured import StructuredDocumentLoader

DEFAULT_SUFFIX = "FILE"
DEFAULT_SEPARATOR = "_"


class MatchKind(str, Enum):
    """How a single environment variable takes part in collection."""

    SKIP = "skip"
    FULL = "full"
    NESTED = "nested"


@dataclass(frozen=True)
class SecretMatch:
    """Outcome of classifying one variable name.

    ``key`` is the derived configuration key for :attr:`MatchKind.NESTED`
    matches and ``None`` otherwise.
    """

    kind: MatchKind
    key: str | None = None


@dataclass(frozen=True)
class SecretPatterns:
    """Lower-cased patterns a source compares variable names against.

    Attributes
    ----------
    prefix_pattern:
        ``prefix + prefix_separator`` or ``None`` when no prefix is configured.
    suffix_pattern:
        ``suffix_separator + suffix``.
    full_pattern:
        Name that, on its own, requests a flat merge of the referenced file.
    separator:
        Segment separator translated to ``.``; empty disables translation.
    """

    prefix_pattern: str | None
    suffix_pattern: str
    full_pattern: str
    separator: str

    def as_dict(self) -> dict[str, str | None]:
        return {
            "prefix_pattern": self.prefix_pattern,
            "suffix_pattern": self.suffix_pattern,
            "full_pattern": self.full_pattern,
            "separator": self.separator,
        }


@dataclass(frozen=True)
class EnvironmentSecretFile:
    """Configuration source that resolves secret-file pointers from the environment.

    Instances are immutable; every builder method returns a new instance.

    Attributes
    ----------
    prefix:
        Optional name prefix every candidate variable must start with. For
        example ``APP`` limits collection to ``APP_*`` variables.
    prefix_separator:
        Sequence between the prefix and the rest of the name. Defaults to
        :attr:`separator`, then ``"_"``.
    suffix:
        Name suffix marking a secret pointer. Defaults to ``"FILE"``.
    suffix_separator:
        Sequence between the key and the suffix. Defaults to :attr:`separator`,
        then ``"_"``.
    separator:
        Segment separator replaced with ``.`` in derived keys, so ``_`` turns
        ``REDIS_AUTH`` into ``redis.auth``. Unset means keys are used verbatim.
    keep_prefix:
        Keep the matched prefix in the derived key instead of stripping it.
    loader:
        Document loader used to read referenced files.
    environ:
        Mapping to read variables from when :meth:`collect` gets none;
        ``None`` means :data:`os.environ`.

    Examples
    --------
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> secret = Path(tmp.name) / "redis.json"
    >>> _ = secret.write_text('{"password": "hunter2"}', encoding="utf-8")
    >>> source = EnvironmentSecretFile.with_prefix("APP").separator("_")
    >>> tree = source.collect({"APP_CACHE_REDIS_FILE": str(secret), "HOME": "/root"})
    >>> sorted(tree)
    ['cache.redis']
    >>> tree["cache.redis"]["password"]
    'hunter2'
    >>> tmp.cleanup()
    """

    layer: ClassVar[str] = "secret"
    path: ClassVar[str | None] = None

    _prefix: str | None = None
    _prefix_separator: str | None = None
    _suffix: str | None = None
    _suffix_separator: str | None = None
    _separator: str | None = None
    _keep_prefix: bool = False
    loader: FileLoader = field(default_factory=StructuredDocumentLoader, compare=False, repr=False)
    environ: Mapping[str, str] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def with_prefix(cls, prefix: str) -> EnvironmentSecretFile:
        """Return a source that only considers variables starting with *prefix*."""

        return cls(_prefix=prefix)

    def prefix(self, value: str) -> EnvironmentSecretFile:
        return replace(self, _prefix=value)

    def prefix_separator(self, value: str) -> EnvironmentSecretFile:
        return replace(self, _prefix_separator=value)

    def suffix(self, value: str) -> EnvironmentSecretFile:
        return replace(self, _suffix=value)

    def suffix_separator(self, value: str) -> EnvironmentSecretFile:
        return replace(self, _suffix_separator=value)

    def separator(self, value: str) -> EnvironmentSecretFile:
        return replace(self, _separator=value)

    def keep_prefix(self, keep: bool) -> EnvironmentSecretFile:
        return replace(self, _keep_prefix=keep)

    def with_loader(self, loader: FileLoader) -> EnvironmentSecretFile:
        """Return a copy that reads referenced files through *loader*."""

        return replace(self, loader=loader)

    def with_environ(self, environ: Mapping[str, str] | None) -> EnvironmentSecretFile:
        """Return a copy that reads variables from *environ* instead of :data:`os.environ`."""

        return replace(self, environ=environ)

    def patterns(self) -> SecretPatterns:
        """Return the patterns derived from the current options."""

        return derive_patterns(
            prefix=self._prefix,
            prefix_separator=self._prefix_separator,
            suffix=self._suffix,
            suffix_separator=self._suffix_separator,
            separator=self._separator,
        )

    def scan(self, environ: Mapping[str, str] | None = None) -> list[tuple[str, SecretMatch, str]]:
        """List ``(name, match, path)`` for every variable that would be loaded.

        Nothing is read from disk; useful to preview what :meth:`collect` will
        do with a given environment.
        """

        patterns = self.patterns()
        found: list[tuple[str, SecretMatch, str]] = []
        for name, value in self._snapshot(environ).items():
            if not value:
                continue
            match = extract_key(name, patterns, keep_prefix=self._keep_prefix)
            if match.kind is not MatchKind.SKIP:
                found.append((name, match, value))
        return found

    def collect(self, environ: Mapping[str, str] | None = None) -> dict[str, object]:
        """Load every secret file referenced by *environ* into a fresh tree.

        Parameters
        ----------
        environ:
            Mapping to read variables from. Defaults to :attr:`environ`, then
            :data:`os.environ`; a snapshot is taken before iterating.

        Returns
        -------
        dict[str, object]
            Top-level keys of full-pattern files, plus one
            :class:`~lib_config_secret.domain.config.TaggedTable` per nested
            match, keyed by the derived (possibly dotted) key.

        Raises
        ------
        NotFound, InvalidFormat
            The first failure reported by the document loader, unchanged.
            Variables are visited in the mapping's iteration order, which for
            :data:`os.environ` is platform dependent.
        """

        patterns = self.patterns()
        log_debug("secret_patterns_derived", layer=self.layer, path=None, **patterns.as_dict())

        collected: dict[str, object] = {}
        for name, value in self._snapshot(environ).items():
            if not value:
                continue
            match = extract_key(name, patterns, keep_prefix=self._keep_prefix)
            if match.kind is MatchKind.SKIP:
                continue
            document = self._load(name, value, match)
            if match.kind is MatchKind.FULL:
                collected.update(document)
                continue
            key = cast(str, match.key)
            collected[key] = TaggedTable(document, origin=f"secret:{key}:{value}", path=value)

        log_info("secrets_collected", layer=self.layer, path=None, keys=sorted(str(key) for key in collected))
        return collected

    def _snapshot(self, environ: Mapping[str, str] | None) -> dict[str, str]:
        if environ is None:
            environ = self.environ if self.environ is not None else os.environ
        return dict(environ)

    def _load(self, name: str, path: str, match: SecretMatch) -> Mapping[str, object]:
        try:
            document = self.loader.load(path)
        except ConfigError as exc:
            log_error("secret_file_failed", layer=self.layer, path=path, variable=name, error=str(exc))
            raise
        log_debug("secret_file_loaded", layer=self.layer, path=path, variable=name, kind=match.kind.value, key=match.key)
        return document


def derive_patterns(
    *,
    prefix: str | None = None,
    prefix_separator: str | None = None,
    suffix: str | None = None,
    suffix_separator: str | None = None,
    separator: str | None = None,
) -> SecretPatterns:
    """Compute the lower-cased patterns for the given options.

    When a prefix is set, the full pattern joins prefix and suffix with the
    shared separator only if the prefix and suffix separators are equal;
    otherwise the two are concatenated with nothing in between.

    Examples
    --------
    >>> derive_patterns(prefix="App").full_pattern
    'app_file'
    >>> derive_patterns(prefix="C", separator=".", prefix_separator="-").full_pattern
    'cfile'
    >>> p = derive_patterns()
    >>> p.prefix_pattern is None, p.suffix_pattern, p.full_pattern
    (True, '_file', 'file')
    """

    resolved_prefix_separator = _first_set(prefix_separator, separator, DEFAULT_SEPARATOR)
    resolved_suffix_separator = _first_set(suffix_separator, separator, DEFAULT_SEPARATOR)
    resolved_suffix = suffix if suffix is not None else DEFAULT_SUFFIX

    prefix_pattern = None
    if prefix is not None:
        prefix_pattern = f"{prefix}{resolved_prefix_separator}".lower()

    if prefix is None:
        full_pattern = resolved_suffix
    elif resolved_prefix_separator == resolved_suffix_separator:
        full_pattern = f"{prefix}{resolved_prefix_separator}{resolved_suffix}"
    else:
        full_pattern = f"{prefix}{resolved_suffix}"

    return SecretPatterns(
        prefix_pattern=prefix_pattern,
        suffix_pattern=f"{resolved_suffix_separator}{resolved_suffix}".lower(),
        full_pattern=full_pattern.lower(),
        separator=separator or "",
    )


def extract_key(name: str, patterns: SecretPatterns, *, keep_prefix: bool = False) -> SecretMatch:
    """Classify variable *name* and derive its configuration key.

    Examples
    --------
    >>> patterns = derive_patterns(prefix="C", separator="_")
    >>> extract_key("C_B_A_FILE", patterns)
    SecretMatch(kind=<MatchKind.NESTED: 'nested'>, key='b.a')
    >>> extract_key("C_FILE", patterns).kind
    <MatchKind.FULL: 'full'>
    >>> extract_key("OTHER_FILE", patterns).kind
    <MatchKind.SKIP: 'skip'>
    """

    key = name.lower()
    if key == patterns.full_pattern:
        return SecretMatch(MatchKind.FULL)

    if patterns.prefix_pattern is not None:
        if not key.startswith(patterns.prefix_pattern):
            return SecretMatch(MatchKind.SKIP)
        if not keep_prefix:
            key = key[len(patterns.prefix_pattern) :]

    if not key.endswith(patterns.suffix_pattern):
        return SecretMatch(MatchKind.SKIP)
    key = key[: len(key) - len(patterns.suffix_pattern)]

    if patterns.separator:
        key = key.replace(patterns.separator, ".")

    # "." alone (C___FILE with separator "_") names no table either
    if not key.strip("."):
        log_debug("secret_variable_skipped", layer="secret", path=None, variable=name, reason="empty_key")
        return SecretMatch(MatchKind.SKIP)
    return SecretMatch(MatchKind.NESTED, key)


def _first_set(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return ""
