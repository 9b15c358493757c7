"""Main entry point - runs the auth API."""

import asyncio
import logging
import signal

import uvicorn

from sentechain.api.app import create_app
from sentechain.config import get_settings
from sentechain.storage.database import close_db
from sentechain.storage.factory import create_user_store

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class Application:
    """Main application that serves the API until a shutdown signal."""

    def __init__(self):
        self.settings = get_settings()
        self.user_store = None
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        configure_logging(self.settings.debug)

        logger.info("Starting SenteChain API...")
        logger.info(f"Environment: {self.settings.environment}")

        self.user_store = await create_user_store(self.settings)
        logger.info(f"User storage initialized: {self.user_store.name}")

        api_task = asyncio.create_task(self._run_api())
        logger.info("API task created")

        # Wait for shutdown signal or server exit
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())
        await asyncio.wait({api_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)

        for task in (api_task, shutdown_task):
            task.cancel()
        await asyncio.gather(api_task, shutdown_task, return_exceptions=True)

        await self._cleanup()

    async def _run_api(self):
        """Run the FastAPI server."""
        try:
            app = create_app(user_store=self.user_store)
            config = uvicorn.Config(
                app,
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    async def _cleanup(self):
        """Cleanup resources."""
        logger.info("Cleaning up...")
        if self.user_store is not None:
            await self.user_store.close()
        await close_db()
        logger.info("Cleanup complete")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def main():
    """Main entry point."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    app = Application()

    # Setup signal handlers
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
