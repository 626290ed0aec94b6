"""DataLab CLI - Main entry point."""

import typer

from datalab_cli.export import export_dataset
from datalab_cli.importer import import_file

app = typer.Typer(
    help="DataLab - conversational training data export",
    no_args_is_help=True,
)

app.command(name="export")(export_dataset)
app.command(name="import")(import_file)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
