"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts the secret environment source and the layered
builder rely on, so format parsing and merge policy stay replaceable.

Contents
--------
* :class:`FileLoader` – parses a structured document (the *document loader*).
* :class:`Source` – anything that can contribute a layer to the builder.
* :class:`Merger` – combines layer payloads and produces provenance metadata.

System Role
-----------
:class:`~lib_config_secret.adapters.env.secret.EnvironmentSecretFile` depends
on :class:`FileLoader` only; :class:`~lib_config_secret.core.ConfigBuilder`
depends on :class:`Source` and :class:`Merger`.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, Tuple, runtime_checkable


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping.

    Implementations must raise :class:`~lib_config_secret.domain.errors.NotFound`
    for missing files and :class:`~lib_config_secret.domain.errors.InvalidFormat`
    for anything that cannot be turned into a mapping. Callers propagate these
    errors unchanged.
    """

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping representation."""


@runtime_checkable
class Source(Protocol):
    """Contribute one layer of configuration to the builder.

    Attributes
    ----------
    layer:
        Logical layer name recorded in provenance.
    path:
        File path backing the whole layer, ``None`` when the layer is assembled
        from several places (environment, in-memory values).
    """

    layer: str
    path: str | None

    def collect(self) -> Mapping[str, object]:
        """Return the layer payload; top-level keys may be dotted paths."""


@runtime_checkable
class Merger(Protocol):
    """Combine layers and produce both merged data and provenance metadata."""

    def merge(
        self, layers: Iterable[tuple[str, Mapping[str, object], str | None]]
    ) -> Tuple[Mapping[str, object], Mapping[str, dict[str, object]]]:
        """Merge *layers* from lowest to highest precedence."""
