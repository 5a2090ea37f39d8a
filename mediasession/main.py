"""
Control API entrypoint.

Resolves the session profile, initialises logging and serves the FastAPI
control surface with uvicorn::

    python -m mediasession.main --profile podcast --port 8080
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .api.registry import SessionRegistry
from .api.server import create_app
from .config import SessionConfig
from .runtime.gst_engine import is_available
from .utils.logging import configure_logging

LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app) -> AsyncIterator[None]:
    LOG.info("Media session API starting (GStreamer %s).", "available" if is_available() else "unavailable")
    try:
        yield
    finally:
        LOG.info("Media session API shutting down")


async def serve(config: SessionConfig, host: str = "127.0.0.1", port: int = 8080) -> None:
    """
    Run the control API inside an asyncio loop.

    Parameters
    ----------
    config:
        Session configuration applied to every session the API opens.
    host, port:
        Bind address for the FastAPI/uvicorn server.
    """

    import uvicorn

    registry = SessionRegistry(config=config)
    app = create_app(registry=registry, config=config, lifespan=lifespan)
    server_config = uvicorn.Config(
        app=app,
        host=host,
        port=port,
        log_config=None,
        log_level="info",
        reload=False,
    )
    server = uvicorn.Server(config=server_config)

    def _handle_signal(signum: int, frame: Optional[object]) -> None:
        LOG.info("Received signal %s, shutting down server...", signum)
        server.should_exit = True

    for signame in ("SIGINT", "SIGTERM"):
        signal.signal(getattr(signal, signame), _handle_signal)

    await server.serve()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Media session control API server")
    parser.add_argument("--profile", default="default", help="session profile to load")
    parser.add_argument("--profiles", default=None, help="path to a profiles YAML file")
    parser.add_argument("--host", default="127.0.0.1", help="bind host for the API server")
    parser.add_argument("--port", type=int, default=8080, help="bind port for the API server")
    parser.add_argument("--log-level", default="INFO", help="root logging level")
    return parser.parse_args(argv)


def run(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)
    config = SessionConfig.from_profile(args.profile, path=args.profiles)

    try:
        asyncio.run(serve(config=config, host=args.host, port=args.port))
    except KeyboardInterrupt:
        LOG.info("Server interrupted by user.")


if __name__ == "__main__":
    run()
