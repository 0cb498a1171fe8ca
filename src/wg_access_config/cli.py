"""CLI adapter for ``wg_access_config`` built on ``click``.

Purpose
-------
Expose the configuration assembler on the command line so operators can see
exactly what the access server would start with, and query the host probes
that feed it.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command storing the traceback preference.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_resolve` – runs :func:`wg_access_config.core.resolve_config` and
  prints the result as JSON (optionally with provenance).
* :func:`cli_default_interface` / :func:`cli_link_address` – host probe helpers.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI is the outermost layer and the only place that terminates the
process: :class:`wg_access_config.domain.errors.ConfigError` becomes a
:class:`click.ClickException` (exit status 1, ``Error: ...`` on stderr) unless
``--traceback`` asks for the full stack.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from typing import Any, Callable, Optional, Sequence

import click

from .adapters.network.iproute import IPRouteProber
from .core import load_sources, resolve_config
from .domain.errors import ConfigError
from .domain.sources import SourceBundle

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
PROG_NAME = "wg-access-config"


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version("wg-access-config")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Resolve the runtime configuration of a WireGuard access server",
    context_settings=CLICK_CONTEXT_SETTINGS,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=PROG_NAME,
    message="%(prog)s version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command storing the traceback preference for subcommands."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("wg-access-config")
    except metadata.PackageNotFoundError:
        click.echo("wg-access-config (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'wg-access-config')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.11')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("resolve", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--config", "config_path", default=None, help="Path to a config file [env: CONFIG]")
@click.option("--log-level", default=None, help="Log level (fatal, error, warn, info, debug, trace) [env: LOG_LEVEL]")
@click.option("--storage-directory", default=None, help="Path to a storage directory [env: STORAGE_DIRECTORY]")
@click.option("--wireguard-private-key", "private_key", default=None, help="Wireguard private key [env: WIREGUARD_PRIVATE_KEY]")
@click.option(
    "--disable-metadata/--enable-metadata",
    default=None,
    help="Disable metadata collection (i.e. metrics) [env: DISABLE_METADATA]",
)
@click.option("--admin-username", default=None, help="Admin username (defaults to admin) [env: ADMIN_USERNAME]")
@click.option(
    "--admin-password",
    default=None,
    help="Admin password (provide plaintext, stored in-memory only) [env: ADMIN_PASSWORD]",
)
@click.option("--upstream-dns", default=None, help="An upstream DNS server to proxy DNS traffic to [env: UPSTREAM_DNS]")
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option("--provenance/--no-provenance", default=False, help="Include provenance metadata for each key")
@click.option("--show-secrets/--hide-secrets", default=False, help="Print the private key instead of redacting it")
@click.pass_context
def cli_resolve(
    ctx: click.Context,
    config_path: Optional[str],
    log_level: Optional[str],
    storage_directory: Optional[str],
    private_key: Optional[str],
    disable_metadata: Optional[bool],
    admin_username: Optional[str],
    admin_password: Optional[str],
    upstream_dns: Optional[str],
    indent: Optional[int],
    provenance: bool,
    show_secrets: bool,
) -> None:
    """Resolve flags, environment, config file and defaults; print the result as JSON.

    Flags win over their environment variables; the config file wins over
    both for every key it defines.
    """

    flags = SourceBundle(
        config_path=config_path,
        log_level=log_level,
        storage_directory=storage_directory,
        private_key=private_key,
        disable_metadata=disable_metadata,
        admin_username=admin_username,
        admin_password=admin_password,
        upstream_dns=upstream_dns,
    )
    config = _guard(ctx, lambda: resolve_config(load_sources(flags=flags)))
    payload = config.to_json(indent=indent, redact=not show_secrets)
    if provenance:
        payload = json.dumps(
            {"config": json.loads(payload), "provenance": dict(config.provenance)},
            indent=indent,
            separators=(",", ":"),
        )
    click.echo(payload)


@cli.command("default-interface", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_default_interface(ctx: click.Context) -> None:
    """Print the network interface that carries the default IPv4 route."""

    click.echo(_guard(ctx, lambda: IPRouteProber().default_interface()))


@cli.command("link-address", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("name")
@click.pass_context
def cli_link_address(ctx: click.Context, name: str) -> None:
    """Print the source IPv4 address used by interface NAME."""

    click.echo(str(_guard(ctx, lambda: IPRouteProber().link_address(name))))


def _guard(ctx: click.Context, action: Callable[[], Any]) -> Any:
    """Run *action*, turning configuration errors into a Click error exit."""

    try:
        return action()
    except ConfigError as exc:
        if (ctx.find_root().obj or {}).get("traceback"):
            raise
        raise click.ClickException(str(exc)) from exc


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Execute the CLI and return the exit code instead of exiting."""

    try:
        result = cli.main(args=list(argv) if argv is not None else None, prog_name=PROG_NAME, standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
