"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by the document loaders, the secret
environment source, and the layered builder. The hierarchy lives in the domain
layer so adapters and the composition root can both depend on it.

Contents
--------
* :class:`ConfigError` – umbrella base class for all configuration-related
  issues.
* :class:`InvalidFormat` – a referenced file exists but cannot be parsed into a
  mapping (malformed content, unsupported format).
* :class:`NotFound` – a referenced file is missing or is not a regular file.

System Role
-----------
Document loaders raise :class:`InvalidFormat` / :class:`NotFound`. The secret
environment source re-raises them unchanged so callers see exactly what the
loader reported; the builder wraps them in ``LayerLoadError``. Callers catch
:class:`ConfigError` to handle every library failure uniformly.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_config_secret``."""


class InvalidFormat(ConfigError):
    """Raised when a secret or configuration file cannot be parsed into a mapping.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`) and the
    content sniffing used for files without a recognised suffix.
    """


class NotFound(ConfigError):
    """Raised when a referenced file does not exist.

    Unlike layered application config, a secret pointer that names a missing
    file is always a hard failure: the variable was set on purpose.
    """
