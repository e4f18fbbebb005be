"""
Task mode — run as a remote task the way an orchestrator invokes it.

Parameters come as a JSON object on stdin, or, when stdin is empty, from
``PT_<name>`` environment variables.  The task's result object is printed
as JSON on stdout; the exit code is 0 on success and 1 on failure.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any

import click

from puppet_agent_tasks.core.errors import InvalidParameter

_ENV_PREFIX = "PT_"


def read_params(raw: str, environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Parse task parameters from stdin text or ``PT_*`` variables.

    Raises:
        InvalidParameter: stdin is not a JSON object.
    """
    if raw.strip():
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidParameter(f"Task parameters are not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvalidParameter("Task parameters must be a JSON object")
        return data

    env = os.environ if environ is None else environ
    params: dict[str, Any] = {}
    for key, value in env.items():
        if key.startswith(_ENV_PREFIX) and len(key) > len(_ENV_PREFIX):
            params[key[len(_ENV_PREFIX):]] = _env_value(value)
    return params


def _env_value(value: str) -> Any:
    # Structured values are passed JSON-encoded
    if value[:1] in ("[", "{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


@click.command()
@click.argument("name", type=click.Choice(["version", "install"]))
@click.pass_context
def task(ctx: click.Context, name: str) -> None:
    """Run the NAME task with parameters from stdin or PT_* variables."""
    from puppet_agent_tasks.core.models.task import TaskResult
    from puppet_agent_tasks.core.use_cases.install import install_agent
    from puppet_agent_tasks.core.use_cases.version import get_version

    stdin = click.get_text_stream("stdin")
    raw = "" if stdin.isatty() else stdin.read()
    try:
        params = read_params(raw)
    except InvalidParameter as e:
        result = TaskResult.failure(name, e.msg, kind=e.kind)
    else:
        common = {"config_path": ctx.obj.get("config_path"), "platform": ctx.obj.get("platform")}
        if name == "version":
            result = get_version(**common)
        else:
            result = install_agent(params, **common)

    click.echo(json.dumps(result.result))
    if not result.ok:
        sys.exit(1)
