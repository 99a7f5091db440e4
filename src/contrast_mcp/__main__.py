"""Command-line entry point: ``python -m contrast_mcp`` or ``contrast-mcp``."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from contrast_mcp.client import ContrastClient
from contrast_mcp.foundation.config import get_settings
from contrast_mcp.foundation.logging import configure_logging, get_logger
from contrast_mcp.server import create_server, run
from contrast_mcp.tools import ServerContext


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contrast-mcp", description="Contrast Security MCP server")
    parser.add_argument("--transport", choices=("stdio", "sse", "streamable-http"), default="stdio")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for HTTP transports")
    parser.add_argument("--port", type=int, default=8080, help="Port for HTTP transports")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.logging.format, settings.logging.level)
    log = get_logger("contrast_mcp.main")

    try:
        client = ContrastClient.from_settings(settings)
    except ValueError as e:
        log.error("startup failed", detail=str(e))
        print(f"contrast-mcp: {e}", file=sys.stderr)
        return 2

    with client:
        ctx = ServerContext(settings, client)
        log.info("server starting", transport=args.transport, host=settings.host_name, org_id=settings.org_id)
        run(create_server(ctx), args.transport, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
