"""Load secret files referenced by environment variables into configuration trees.

``APP_DB_FILE=/run/secrets/db.json`` becomes a ``db`` table holding the parsed
document; ``APP_FILE=/run/secrets/app.toml`` merges the document's top-level
keys directly. See :class:`EnvironmentSecretFile` for the naming rules and
:class:`ConfigBuilder` for combining secrets with other sources.
"""

from __future__ import annotations

from .adapters.env.secret import EnvironmentSecretFile, MatchKind, SecretMatch, SecretPatterns, derive_patterns, extract_key
from .adapters.file_loaders.structured import StructuredDocumentLoader
from .core import ConfigBuilder, FileSource, LayerLoadError, MappingSource, read_secrets, secret_source
from .domain.config import EMPTY_CONFIG, Config, SourceInfo, TaggedTable
from .domain.errors import ConfigError, InvalidFormat, NotFound
from .observability import bind_trace_id, get_logger

__all__ = [
    "Config",
    "ConfigBuilder",
    "ConfigError",
    "EMPTY_CONFIG",
    "EnvironmentSecretFile",
    "FileSource",
    "InvalidFormat",
    "LayerLoadError",
    "MappingSource",
    "MatchKind",
    "NotFound",
    "SecretMatch",
    "SecretPatterns",
    "SourceInfo",
    "StructuredDocumentLoader",
    "TaggedTable",
    "bind_trace_id",
    "derive_patterns",
    "extract_key",
    "get_logger",
    "read_secrets",
    "secret_source",
]
