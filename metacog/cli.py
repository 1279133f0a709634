"""CLI interface for metacog.

Provides commands for:
- Starting the HTTP server
- Serving over stdio
- Listing and calling tools locally
"""

import json
import sys

import click
import uvicorn

from metacog import __version__
from metacog.config import get_settings
from metacog.errors import MetacogError
from metacog.schemas.mcp import ParameterKind


def _parse_args(pairs: tuple[str, ...], kinds: dict[str, ParameterKind]) -> dict[str, object]:
    """Turn repeated KEY=VALUE options into tool arguments.

    Repeating a key declared as a string array appends to it.
    """
    arguments: dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--arg")
        if kinds.get(key) is ParameterKind.STRING_ARRAY:
            arguments.setdefault(key, [])
            arguments[key].append(value)
        else:
            arguments[key] = value
    return arguments


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="metacog")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Metacog - metacognitive tools for LLMs.

    Four primitives: identity, substrate, ritual, prayer. With no command,
    serves MCP over stdin/stdout. Use `metacog serve` for HTTP.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(stdio)


@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind to")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP server (/mcp, /sse, /v1/tools)."""
    settings = get_settings()

    actual_host = host or settings.host
    actual_port = port or settings.port

    click.echo(f"Starting metacog server on {actual_host}:{actual_port}")

    uvicorn.run(
        "metacog.server:app",
        host=actual_host,
        port=actual_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command()
def stdio() -> None:
    """Serve MCP over stdin/stdout (the default command).

    Connect it to an MCP client, e.g.:

        claude mcp add --scope user metacog -- metacog
    """
    from metacog import stdio as stdio_transport
    from metacog.logging import configure_logging
    from metacog.mcp_server import create_mcp_server
    from metacog.tools.builtin import INSTRUCTIONS, create_registry
    from metacog.tools.executor import ToolInvoker, log_sink

    settings = get_settings()
    configure_logging(json_format=True, level=settings.log_level, stream=sys.stderr)

    invoker = ToolInvoker(create_registry(), sink=log_sink if settings.log_invocations else None)
    stdio_transport.serve_stdio(create_mcp_server(invoker, instructions=INSTRUCTIONS))


@cli.group()
def tools() -> None:
    """Tool management commands."""
    pass


@tools.command("list")
def list_tools() -> None:
    """List all registered tools."""
    from metacog.tools.builtin import create_registry

    registry = create_registry()

    click.echo(f"Registered tools ({len(registry)}):\n")

    for descriptor in registry.list():
        click.echo(f"  {click.style(descriptor.name, fg='green', bold=True)}")
        click.echo(f"    {descriptor.description.splitlines()[0]}")
        if descriptor.parameters:
            params = [
                name if spec.required else f"[{name}]"
                for name, spec in descriptor.parameters.items()
            ]
            click.echo(f"    Parameters: {', '.join(params)}")
        click.echo()


@tools.command("call")
@click.argument("name")
@click.option("--arg", "-a", "pairs", multiple=True, metavar="KEY=VALUE", help="Tool argument")
@click.option("--json", "as_json", is_flag=True, help="Print the full result envelope")
def call_tool(name: str, pairs: tuple[str, ...], as_json: bool) -> None:
    """Invoke a tool locally and print its output."""
    from metacog.tools.builtin import create_registry
    from metacog.tools.executor import ToolInvoker

    registry = create_registry()
    kinds = {}
    if name in registry:
        kinds = {k: spec.kind for k, spec in registry.lookup(name).descriptor.parameters.items()}

    try:
        result = ToolInvoker(registry, sink=None).invoke(name, _parse_args(pairs, kinds))
    except MetacogError as e:
        raise click.ClickException(f"{e.kind}: {e.message}") from e

    if as_json:
        click.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        return
    for block in result.content:
        click.echo(block.text)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
