"""
puppet-agent-tasks — CLI entrypoint.

Usage:
    puppet-agent-task --help
    puppet-agent-task version
    puppet-agent-task install --collection puppet6 --version latest
    puppet-agent-task task install < params.json
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from puppet_agent_tasks import __version__
from puppet_agent_tasks.core.models.task import TaskResult
from puppet_agent_tasks.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="puppet-agent-task")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to puppet_agent.yml (default: auto-detect).",
)
@click.option(
    "--platform",
    "-p",
    default=None,
    help="Platform string such as el-7-x86_64 (default: detect this host).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    platform: str | None,
) -> None:
    """Puppet agent tasks — report, install and upgrade puppet-agent."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["platform"] = platform

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(
            debug=debug, verbose=verbose, quiet=quiet,
            env_level=os.environ.get("PAT_LOG_LEVEL"),
        ),
        log_file=os.environ.get("PAT_LOG_FILE"),
        log_file_level=os.environ.get("PAT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _finish(result: TaskResult, as_json: bool, quiet: bool = False) -> None:
    """Print a task result and exit non-zero on failure."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.ok:
        if result.output and not quiet:
            click.echo(result.output)
    else:
        error = result.error or {}
        click.secho(f"❌ {error.get('msg', 'failed')}", fg="red", err=True)
        click.secho(f"   kind: {error.get('kind')}", fg="red", err=True)
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def version(ctx: click.Context, as_json: bool) -> None:
    """Show the installed puppet-agent version."""
    from puppet_agent_tasks.core.use_cases.version import get_version

    result = get_version(config_path=ctx.obj.get("config_path"), platform=ctx.obj.get("platform"))

    if not as_json and result.ok:
        if result.result.get("version"):
            click.secho(f"📦 puppet-agent {result.result['version']}", fg="green", bold=True)
            click.echo(f"   Source: {result.result['source']}")
        else:
            click.secho("puppet-agent is not installed", fg="yellow")
        return
    _finish(result, as_json)


@cli.command()
@click.option("--collection", required=True, help="Collection, e.g. puppet6 or puppet7-nightly.")
@click.option("--version", "version_", default=None, help="Exact version or 'latest'.")
@click.option("--stop-service", is_flag=True, help="Stop the puppet service after installing.")
@click.option("--dry-run", is_flag=True, help="Decide but don't install.")
@click.option("--retry", type=click.IntRange(min=1), default=None, help="Attempts while the package manager is locked.")
@click.option("--yum-source", default=None, help="Base URL of the yum host.")
@click.option("--apt-source", default=None, help="Base URL of the apt host.")
@click.option("--mac-source", default=None, help="Base URL for macOS packages.")
@click.option("--windows-source", default=None, help="Base URL for Windows packages.")
@click.option("--solaris-source", default=None, help="Base URL for Solaris packages.")
@click.option("--install-option", "install_options", multiple=True, help="Extra installer argument (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    collection: str,
    version_: str | None,
    stop_service: bool,
    dry_run: bool,
    retry: int | None,
    yum_source: str | None,
    apt_source: str | None,
    mac_source: str | None,
    windows_source: str | None,
    solaris_source: str | None,
    install_options: tuple[str, ...],
    as_json: bool,
) -> None:
    """Install or upgrade puppet-agent from a collection."""
    from puppet_agent_tasks.core.use_cases.install import install_agent

    params = {
        "collection": collection,
        "version": version_,
        "stop_service": stop_service,
        "retry": retry,
        "yum_source": yum_source,
        "apt_source": apt_source,
        "mac_source": mac_source,
        "windows_source": windows_source,
        "solaris_source": solaris_source,
        "install_options": list(install_options),
    }
    result = install_agent(
        params,
        config_path=ctx.obj.get("config_path"),
        platform=ctx.obj.get("platform"),
        dry_run=dry_run,
    )
    _finish(result, as_json, quiet=ctx.obj.get("quiet", False))


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def facts(ctx: click.Context, as_json: bool) -> None:
    """Show the detected platform and the backend that would be used."""
    from puppet_agent_tasks.core.use_cases.facts import get_facts

    result = get_facts(config_path=ctx.obj.get("config_path"), platform=ctx.obj.get("platform"))

    if as_json or not result.ok:
        _finish(result, as_json)
        return

    info = result.result
    platform = info["platform"]
    click.secho(f"🖥️  {platform['tag']}", fg="cyan", bold=True)
    click.echo(f"   Family:  {platform['family']}")
    if platform.get("codename"):
        click.echo(f"   Codename: {platform['codename']}")
    marker = "✅" if info["backend_available"] else "❌"
    click.echo(f"   Backend: {marker} {info['backend']} ({platform['package_manager']})")
    raw = info["facts"]
    click.echo(f"   Facts:   {raw['os_name']} {raw['os_version']} {raw['arch']}")


# ── Sub-groups ──────────────────────────────────────────────────

from puppet_agent_tasks.ui.cli.catalog import catalog  # noqa: E402
from puppet_agent_tasks.ui.cli.task import task  # noqa: E402

cli.add_command(catalog)
cli.add_command(task)


if __name__ == "__main__":
    cli()
