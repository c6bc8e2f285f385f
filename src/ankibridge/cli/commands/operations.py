"""List the operations the bridge serves."""

from typing import Annotated

import typer

from ankibridge.cli.console import console, error


def register(app: typer.Typer) -> None:
    """Register the operations command."""

    @app.command()
    def operations(
        name: Annotated[
            str | None,
            typer.Argument(help="Show only this operation"),
        ] = None,
    ) -> None:
        """Show the operation table and each operation's arguments."""
        from rich.table import Table

        from ankibridge.dispatcher import CHECK_PERMISSION, REQUEST_PERMISSION
        from ankibridge.registry import OPERATIONS

        if name is not None and name not in OPERATIONS:
            error(f"Unknown operation: {name}")
            raise typer.Exit(1)

        table = Table(title="Operations")
        table.add_column("Name", style="cyan")
        table.add_column("Arguments")
        table.add_column("Description", style="dim")

        if name is None:
            table.add_row(CHECK_PERMISSION, "", "Is access granted (no gate)")
            table.add_row(REQUEST_PERMISSION, "", "Prompt for access (no gate)")

        for op_name in sorted(OPERATIONS):
            if name is not None and op_name != name:
                continue
            operation = OPERATIONS[op_name]
            arguments = ", ".join(
                f"{key}: {type_name}" + ("" if required else " (optional)")
                for key, type_name, required in operation.argument_schema
            )
            table.add_row(op_name, arguments, operation.description)

        console.print(table)
