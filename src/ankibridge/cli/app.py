"""Main CLI application."""

import typer

from ankibridge.cli.commands import config, operations, serve

app = typer.Typer(
    name="ankibridge",
    help="ankibridge - permission-gated bridge to the AnkiDroid content API",
    no_args_is_help=True,
)

config.register(app)
operations.register(app)
serve.register(app)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
