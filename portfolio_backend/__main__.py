from __future__ import annotations

import argparse

import uvicorn

from portfolio_backend.config import get_settings
from portfolio_backend.observability.logging import configure_logging


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Portfolio backend HTTP service")
    parser.add_argument("--host", default=settings.host, help="Address to bind (env HOST)")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on (env PORT)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    uvicorn.run(
        "portfolio_backend.main:app",
        host=args.host,
        port=args.port,
        reload=bool(args.reload),
        log_config=None,
    )


if __name__ == "__main__":
    main()
