"""Entry point - starts the REST server."""

import asyncio

import structlog
import uvicorn

from taskdesk_service.rest.app import create_app
from taskdesk_service.settings import settings

logger = structlog.get_logger()


async def main() -> None:
    app = create_app()
    config = uvicorn.Config(
        app,
        host=settings.rest_host,
        port=settings.rest_port,
        log_level=settings.log_level.lower(),
        # structlog owns the request log via RequestContextMiddleware
        access_log=False,
    )
    server = uvicorn.Server(config)

    logger.info("starting_service", host=settings.rest_host, rest_port=settings.rest_port)

    await server.serve()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
