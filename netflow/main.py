"""
Netflow monitor entry point.

Wires configuration, storage, the log subscriber and the HTTP API,
then runs until SIGINT/SIGTERM. Only configuration errors stop the
process; the subscriber is supervised and restarted on failure.
"""

import asyncio
import signal
import sys
from contextlib import suppress

from loguru import logger

from netflow.api import create_app, start_api_server, stop_api_server
from netflow.config.database import create_engine, create_session_maker, init_models
from netflow.config.settings import Settings, load_settings
from netflow.initialization import setup_logging
from netflow.services.address_registry import build_registries
from netflow.services.blockchain import (
    LogSubscriber,
    ReconnectBackoff,
    Web3LogSource,
    supervise,
)
from netflow.services.netflow_store import NetflowStore
from netflow.utils.exceptions import ConfigurationError
from netflow.utils.security import mask_address


async def main(settings: Settings) -> None:
    """Run monitor until a shutdown signal arrives."""
    registries = build_registries(settings.exchanges)

    engine = create_engine(settings.database_url, echo=settings.database_echo)
    await init_models(engine)
    store = NetflowStore(create_session_maker(engine))

    subscriber = LogSubscriber(
        source=Web3LogSource(settings.rpc_url),
        store=store,
        registries=registries,
        contract_address=settings.token_address,
        backoff=ReconnectBackoff(
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
            jitter=settings.reconnect_jitter,
        ),
    )
    logger.info(f"Monitoring token {mask_address(settings.token_address)}")

    app = create_app(store, registries, subscriber.stats)
    runner = await start_api_server(app, settings.api_host, settings.api_port)

    subscriber_task = asyncio.create_task(
        supervise(subscriber, restart_delay=settings.restart_delay),
        name="log-subscriber",
    )

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown.set)

    try:
        waiter = asyncio.create_task(shutdown.wait())
        done, _ = await asyncio.wait(
            {subscriber_task, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
        waiter.cancel()
        if subscriber_task in done:
            # Supervisor only returns on ConfigurationError or a clean stop
            subscriber_task.result()
    finally:
        logger.info("Shutting down...")
        subscriber.stop()
        if not subscriber_task.done():
            subscriber_task.cancel()
            with suppress(asyncio.CancelledError):
                await subscriber_task
        await stop_api_server(runner)
        await engine.dispose()
        logger.info("Shutdown complete")


def run() -> None:
    """Console entry point."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.critical(f"Cannot start: {e}")
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_file)

    try:
        asyncio.run(main(settings))
    except ConfigurationError as e:
        logger.critical(f"Cannot start: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    run()
