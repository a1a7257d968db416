"""
amaise agent CLI - Main entry point.

Commands:
    amaise-agent run       - Poll for events and acknowledge them
    amaise-agent validate  - Ping / PongEvent connectivity check
    amaise-agent version   - Show the agent version
"""

import typer

from .commands import run, validate

app = typer.Typer(
    name="amaise-agent",
    help="amaise agent - receive and acknowledge events from the amaise Agent API.",
    no_args_is_help=True,
)

# Register commands
app.command(name="run", help="Poll for events and acknowledge them until interrupted.")(run.run_agent)
app.command(name="validate", help="Check connectivity with a debug ping and PongEvent.")(validate.validate_connection)


@app.command()
def version():
    """
    Show the agent version.
    """
    from amaise_agent import __version__
    typer.echo(f"amaise agent v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
