"""
CLI commands for the package catalog.

Thin wrappers over ``puppet_agent_tasks.core.use_cases.catalog``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def catalog() -> None:
    """Catalog — versions published per collection and platform."""


@catalog.command("list")
@click.option("--collection", required=True, help="Collection, e.g. puppet6 or puppet7-nightly.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, collection: str, as_json: bool) -> None:
    """List available puppet-agent versions, oldest first."""
    from puppet_agent_tasks.core.use_cases.catalog import list_versions

    result = list_versions(
        collection,
        config_path=ctx.obj.get("config_path"),
        platform=ctx.obj.get("platform"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ {result.error['msg']}", fg="red", err=True)
        sys.exit(1)

    info = result.result
    if not info["versions"]:
        click.secho(f"⚠️  No versions of {info['collection']} for {info['platform']}", fg="yellow")
        return

    click.secho(f"📦 {info['collection']} on {info['platform']}:", fg="cyan", bold=True)
    for v in info["versions"]:
        marker = "  ← latest" if v == info["latest"] else ""
        click.echo(f"   • {v}{marker}")
