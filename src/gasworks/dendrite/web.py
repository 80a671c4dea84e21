"""
Web dendrite: excitation from other neurones over HTTP.

Neighbours fire into this node with ``GET /?e=<transfer>``; the value is
pushed onto the axon's queue exactly like a camera delta. The master's
startup broadcast arrives the same way, as a negative value.
"""

from typing import Tuple
import logging

from fastapi import FastAPI, Query, Request
import uvicorn

logger = logging.getLogger(__name__)


def parse_listen_address(listen_address: str, default_host: str = "0.0.0.0") -> Tuple[str, int]:
    """
    Split a ``host:port`` listen address.

    An empty host (``":8080"``) means every interface.

    Raises:
        ValueError: If the port is missing or not a number
    """
    host, sep, port = listen_address.rpartition(":")
    if not sep:
        raise ValueError(f"Listen address has no port: {listen_address!r}")
    return host or default_host, int(port)


def create_app(axon) -> FastAPI:
    """Build the FastAPI app feeding ``axon``."""
    app = FastAPI(title="gasworks-neurone")
    app.state.axon = axon

    @app.get("/")
    async def excite(request: Request, e: float = Query(..., allow_inf_nan=False)):
        queued = await request.app.state.axon.enqueue(e)
        client = request.client.host if request.client else "unknown"
        logger.debug(f"Excitation from {client} | e={e:f} queued={queued}")
        return {"ok": queued}

    @app.get("/health")
    async def health(request: Request):
        return request.app.state.axon.health_check()

    return app


async def serve_web_dendrite(axon, listen_address: str) -> None:
    """Serve the web dendrite until cancelled."""
    host, port = parse_listen_address(listen_address)
    config = uvicorn.Config(create_app(axon), host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    logger.info(f"Starting web dendrite on {host}:{port}")
    await server.serve()
