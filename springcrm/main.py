"""springcrm entry point: wires the store, assistant and HTTP server together."""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from springcrm import __version__
from springcrm.api import ApiServer
from springcrm.config import Settings, load_settings
from springcrm.core.assistant import Assistant
from springcrm.core.auth import AuthManager
from springcrm.core.fallback import FallbackController
from springcrm.core.llm import ChatCompletionClient
from springcrm.core.tool_use import ToolUseOrchestrator
from springcrm.store import JsonStore
from springcrm.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


class SpringCRM:
    """Main application object."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

        self.store = JsonStore(settings.get_data_dir())
        self.auth = AuthManager(settings.auth, self.store)

        self.llm = ChatCompletionClient(settings.llm)
        orchestrator = ToolUseOrchestrator(self.llm)
        fallback = FallbackController(self.llm, orchestrator, settings.llm.search_tool_name)
        self.assistant = Assistant(self.store, self.llm, fallback, settings.prompt)

        self.server = ApiServer(settings.server, self.store, self.auth, self.assistant)

    async def start(self) -> None:
        log.info("springcrm_starting", version=__version__, model=self.settings.llm.model)
        self.store.load()
        self.auth.ensure_admin()
        await self.server.start()
        log.info("springcrm_ready")

    async def stop(self) -> None:
        log.info("springcrm_stopping")
        await self.server.stop()
        await self.llm.close()
        log.info("springcrm_stopped")


async def run(settings: Settings) -> None:
    app = SpringCRM(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--port", type=int, default=None, help="HTTP port to listen on")
@click.option("--data-dir", default=None, help="Directory holding the JSON collections")
def cli(config_path: str | None, log_level: str | None, port: int | None, data_dir: str | None) -> None:
    """Start the springcrm API server."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    if port is not None:
        settings.server.port = port
    if data_dir:
        settings.data_dir = data_dir
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    asyncio.run(run(settings))


if __name__ == "__main__":
    cli()
