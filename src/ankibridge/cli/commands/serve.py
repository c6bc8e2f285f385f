"""Run the channel server."""

from pathlib import Path
from typing import Annotated

import typer

from ankibridge.cli.console import console, error


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        engine: Annotated[
            str,
            typer.Option(
                "--engine",
                "-e",
                help="Host environment factory as 'module:function'",
            ),
        ],
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        socket: Annotated[
            Path | None,
            typer.Option(
                "--socket",
                "-s",
                help="Socket path (overrides config)",
            ),
        ] = None,
    ) -> None:
        """Serve bridge operations on a Unix socket."""
        import asyncio
        import signal

        from ankibridge.bridge import create_dispatcher, load_environment
        from ankibridge.config import ConfigError, get_default_config, load_config
        from ankibridge.logging import configure_logging
        from ankibridge.rpc import ChannelServer

        try:
            bridge_config = load_config(config) if config else get_default_config()
            environment = load_environment(engine)
        except (ConfigError, FileNotFoundError, ValueError) as e:
            error(str(e))
            raise typer.Exit(1) from None

        configure_logging(
            level=bridge_config.logging.level,
            use_rich=True,
            log_to_file=bridge_config.logging.log_to_file,
            retention_days=bridge_config.logging.retention_days,
        )

        socket_path = socket or bridge_config.server.socket_path
        dispatcher = create_dispatcher(environment, bridge_config)
        server = ChannelServer(socket_path, dispatcher)

        async def run_server() -> None:
            await server.start()
            console.print(f"[bold green]Serving on {socket_path}[/bold green]")

            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, stop.set)

            try:
                await stop.wait()
            finally:
                await server.stop()
                dispatcher.detach()

        asyncio.run(run_server())
