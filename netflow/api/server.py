"""
Netflow HTTP API.

Read-only surface over the netflow store:
- GET /netflow                  latest snapshot (?exchange=, default: first configured)
- GET /netflow/{exchange}       latest snapshot for an exchange
- GET /netflow/{exchange}/history?limit=N
- GET /exchanges                configured exchanges
- GET /health                   subscriber status

Amounts are returned as decimal strings.
"""

import asyncio
import json
from collections.abc import Sequence

from aiohttp import web
from loguru import logger

from netflow.services.address_registry import AddressRegistry
from netflow.services.blockchain.log_subscriber import SubscriberStats
from netflow.services.netflow_store import NetflowStore
from netflow.utils.exceptions import StoreError

STORE_KEY = web.AppKey("store", NetflowStore)
REGISTRIES_KEY = web.AppKey("registries", tuple)
STATS_KEY = web.AppKey("stats", SubscriberStats)

MAX_HISTORY_LIMIT = 1000


def _resolve_exchange(request: web.Request) -> str:
    """
    Exchange label from path, query, or the first configured one.

    Raises:
        web.HTTPNotFound: If the label is not configured
    """
    registries = request.app[REGISTRIES_KEY]
    exchange = (
        request.match_info.get("exchange")
        or request.query.get("exchange")
        or registries[0].label
    )
    if exchange not in {r.label for r in registries}:
        raise web.HTTPNotFound(
            text=json.dumps({"exchange": exchange, "error": "unknown exchange"}),
            content_type="application/json",
        )
    return exchange


def _storage_unavailable() -> web.Response:
    return web.json_response({"error": "storage unavailable"}, status=500)


async def netflow_handler(request: web.Request) -> web.Response:
    """
    Latest netflow snapshot.

    Returns:
        200 with snapshot, 404 if nothing recorded yet
    """
    exchange = _resolve_exchange(request)
    store = request.app[STORE_KEY]

    try:
        snapshot = await store.latest(exchange)
    except StoreError as e:
        logger.error(f"[API] Netflow lookup for {exchange} failed: {e}")
        return _storage_unavailable()

    if snapshot is None:
        return web.json_response(
            {"exchange": exchange, "error": "no netflow recorded"},
            status=404,
        )

    return web.json_response(snapshot.to_dict())


async def history_handler(request: web.Request) -> web.Response:
    """Recent snapshots, newest first."""
    exchange = _resolve_exchange(request)
    store = request.app[STORE_KEY]

    try:
        limit = int(request.query.get("limit", "100"))
    except ValueError:
        return web.json_response({"error": "limit must be an integer"}, status=400)
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))

    try:
        snapshots = await store.history(exchange, limit=limit)
    except StoreError as e:
        logger.error(f"[API] History lookup for {exchange} failed: {e}")
        return _storage_unavailable()

    return web.json_response(
        {
            "exchange": exchange,
            "snapshots": [s.to_dict() for s in snapshots],
        }
    )


async def exchanges_handler(request: web.Request) -> web.Response:
    """Configured exchanges and their address counts."""
    return web.json_response(
        {
            "exchanges": [
                {"exchange": r.label, "addresses": len(r)}
                for r in request.app[REGISTRIES_KEY]
            ]
        }
    )


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON with subscriber counters; "degraded" while disconnected
    """
    stats = request.app[STATS_KEY]
    status = "healthy" if stats.connected else "degraded"
    return web.json_response({"status": status, "subscriber": stats.to_dict()})


def create_app(
    store: NetflowStore,
    registries: Sequence[AddressRegistry],
    stats: SubscriberStats | None = None,
) -> web.Application:
    """
    Build the API application.

    Args:
        store: Netflow store (read path only)
        registries: Configured exchanges
        stats: Subscriber counters for /health

    Returns:
        aiohttp Application
    """
    if not registries:
        raise ValueError("at least one exchange registry is required")

    app = web.Application()
    app[STORE_KEY] = store
    app[REGISTRIES_KEY] = tuple(registries)
    app[STATS_KEY] = stats or SubscriberStats()

    app.router.add_get("/netflow", netflow_handler)
    app.router.add_get("/netflow/{exchange}", netflow_handler)
    app.router.add_get("/netflow/{exchange}/history", history_handler)
    app.router.add_get("/exchanges", exchanges_handler)
    app.router.add_get("/health", health_handler)
    return app


async def start_api_server(
    app: web.Application,
    host: str,
    port: int,
) -> web.AppRunner:
    """
    Start API server.

    Args:
        app: Application from create_app()
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"🌐 API running at http://{host}:{port}/netflow")
    return runner


async def stop_api_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop API server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping API server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("API server stopped")
    except TimeoutError:
        logger.warning(f"API server cleanup timed out after {timeout}s")
