"""CLI adapter for ``lib_config_secret`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators check how a container's environment will be read before the
application starts: which variables count as secret pointers, which keys they
produce, and what the merged tree looks like.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling into ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_patterns` – prints the patterns derived from the given options.
* :func:`cli_scan` – lists matching variables without reading any file.
* :func:`cli_collect` – loads the secrets and prints the tree as JSON.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. Commands call :func:`lib_config_secret.core.secret_source`
and the builder; they never reach into adapter internals.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from typing import Callable, Final, Optional, Sequence, TypeVar

import lib_cli_exit_tools
import rich_click as click

from .adapters.env.secret import EnvironmentSecretFile
from .core import ConfigBuilder, secret_source

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DIST_NAME: Final[str] = "lib_config_secret"

F = TypeVar("F", bound=Callable[..., object])


def _resolve_version() -> str:
    try:
        return metadata.version(_DIST_NAME)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _pattern_options(func: F) -> F:
    """Attach the options shared by every command that builds a secret source."""

    decorators = (
        click.option("--prefix", default=None, help="Required variable name prefix (e.g. APP)"),
        click.option("--separator", default=None, help="Segment separator translated to '.' in derived keys"),
        click.option("--prefix-separator", default=None, help="Separator between prefix and key (default: separator or '_')"),
        click.option("--suffix", default=None, help="Variable name suffix marking a secret pointer (default: FILE)"),
        click.option("--suffix-separator", default=None, help="Separator between key and suffix (default: separator or '_')"),
        click.option(
            "--keep-prefix/--strip-prefix",
            default=False,
            show_default=True,
            help="Keep the matched prefix in derived keys",
        ),
    )
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _source_from_options(
    prefix: Optional[str],
    separator: Optional[str],
    prefix_separator: Optional[str],
    suffix: Optional[str],
    suffix_separator: Optional[str],
    keep_prefix: bool,
) -> EnvironmentSecretFile:
    return secret_source(
        prefix,
        separator=separator,
        prefix_separator=prefix_separator,
        suffix=suffix,
        suffix_separator=suffix_separator,
        keep_prefix=keep_prefix,
    )


@click.group(
    help="Load secret files referenced by environment variables",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DIST_NAME,
    message="lib_config_secret version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command storing the traceback preference for ``lib_cli_exit_tools``."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DIST_NAME)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DIST_NAME} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DIST_NAME)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("patterns", context_settings=CLICK_CONTEXT_SETTINGS)
@_pattern_options
def cli_patterns(
    prefix: Optional[str],
    separator: Optional[str],
    prefix_separator: Optional[str],
    suffix: Optional[str],
    suffix_separator: Optional[str],
    keep_prefix: bool,
) -> None:
    """Print the lower-cased patterns variable names are matched against.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["patterns", "--prefix", "APP"])
    >>> json.loads(result.output)["full_pattern"]
    'app_file'
    """

    source = _source_from_options(prefix, separator, prefix_separator, suffix, suffix_separator, keep_prefix)
    click.echo(json.dumps(source.patterns().as_dict(), indent=2))


@cli.command("scan", context_settings=CLICK_CONTEXT_SETTINGS)
@_pattern_options
def cli_scan(
    prefix: Optional[str],
    separator: Optional[str],
    prefix_separator: Optional[str],
    suffix: Optional[str],
    suffix_separator: Optional[str],
    keep_prefix: bool,
) -> None:
    """List environment variables that point at secret files, without reading them."""

    source = _source_from_options(prefix, separator, prefix_separator, suffix, suffix_separator, keep_prefix)
    rows = [
        {"variable": name, "kind": match.kind.value, "key": match.key, "path": path}
        for name, match, path in sorted(source.scan(), key=lambda item: item[0])
    ]
    click.echo(json.dumps(rows, indent=2))


@cli.command("collect", context_settings=CLICK_CONTEXT_SETTINGS)
@_pattern_options
@click.option(
    "--indent",
    type=int,
    default=None,
    help="Pretty-print JSON output with the provided indent size",
)
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include provenance metadata for each key in the output",
)
def cli_collect(
    prefix: Optional[str],
    separator: Optional[str],
    prefix_separator: Optional[str],
    suffix: Optional[str],
    suffix_separator: Optional[str],
    keep_prefix: bool,
    indent: Optional[int],
    provenance: bool,
) -> None:
    """Load every referenced secret file and print the merged tree as JSON.

    Secret values are printed as-is; redirect the output accordingly.
    """

    source = _source_from_options(prefix, separator, prefix_separator, suffix, suffix_separator, keep_prefix)
    builder = ConfigBuilder().add_source(source)
    if provenance:
        data, meta = builder.build_raw()
        click.echo(json.dumps({"config": data, "provenance": meta}, indent=indent, separators=(",", ":")))
        return
    click.echo(builder.build().to_json(indent=indent))


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DIST_NAME,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
