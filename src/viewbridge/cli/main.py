"""CLI entry point using Typer."""

from __future__ import annotations

import typer

from viewbridge.cli.commands import device, ui

app = typer.Typer(
    name="viewbridge",
    help="Wait for Android devices and inspect their view hierarchy",
    no_args_is_help=True,
)


@app.command()
def version() -> None:
    """Show version information."""
    from viewbridge import __version__

    typer.echo(f"viewbridge v{__version__}")


app.add_typer(device.app, name="device")
app.add_typer(ui.app, name="ui")


if __name__ == "__main__":
    app()
