"""FastAPI application exposing routing, AMM math, slippage and limit orders.

Services (chain client, route finder, order engine) are built once per
application in the lifespan handler and injected into endpoints through
the Depends providers in dexroute.api.endpoints.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from dexroute import __version__, config
from dexroute.api.endpoints import Services, get_chain_client, router
from dexroute.chain.client import ChainClient
from dexroute.chain.reader import PoolReader
from dexroute.chain.transport import load_endpoints
from dexroute.clock import AsyncioScheduler, SystemClock
from dexroute.constants import TOKEN_LIST
from dexroute.errors import AmmError, OrderNotFound, OrderStateError
from dexroute.orders.engine import LimitOrderEngine
from dexroute.orders.price_feed import PoolPriceFeed
from dexroute.orders.store import LimitOrderStore
from dexroute.routing.router import RouteFinder

logger = structlog.get_logger()

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024


def build_services() -> Services:
    """Wire the production service graph from environment configuration."""
    clock = SystemClock()
    client = ChainClient(
        load_endpoints(config.RPC_URLS, config.PROXY_URL),
        config=config.ChainClientConfig(),
        clock=clock,
        expected_chain_id=config.EXPECTED_CHAIN_ID,
    )
    reader = PoolReader(client)
    engine = LimitOrderEngine(
        LimitOrderStore(config.ORDER_STORE_PATH),
        PoolPriceFeed(reader, TOKEN_LIST),
        clock=clock,
        scheduler=AsyncioScheduler(),
    )
    return Services(client=client, route_finder=RouteFinder(reader, TOKEN_LIST), order_engine=engine, tokens=TOKEN_LIST)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    services = build_services()
    app.state.services = services
    services.order_engine.start(interval=config.ORDER_WATCH_INTERVAL)
    logger.info("service_started", endpoint=services.client.endpoint.label)
    try:
        yield
    finally:
        services.order_engine.stop()
        await services.client.aclose()
        logger.info("service_stopped")


app = FastAPI(
    title="dexroute",
    description="Route discovery, AMM quotes and limit-order tracking for a UniswapV2-style exchange",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(AmmError)
async def amm_error_handler(request: Request, exc: AmmError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": type(exc).__name__})


@app.exception_handler(OrderNotFound)
async def order_not_found_handler(request: Request, exc: OrderNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(OrderStateError)
async def order_state_handler(request: Request, exc: OrderStateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


app.include_router(router)


@app.get("/health")
async def health(client: ChainClient = Depends(get_chain_client)) -> dict[str, object]:
    """Health check. Reports "degraded" while the chain client is cooling down."""
    chain = client.status()
    return {"status": "ok" if chain["available"] else "degraded", "chain": chain}


def run() -> None:
    """Run the API server.

    Configuration via environment variables:
    - DEXROUTE_HOST: Host to bind to (default: 0.0.0.0)
    - DEXROUTE_PORT: Port to bind to (default: 8000)
    - DEXROUTE_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "dexroute.api.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
    )


if __name__ == "__main__":
    run()
