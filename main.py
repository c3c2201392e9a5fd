#!/usr/bin/env python3
"""
TokenGate -- demo HTTP API with bearer-token sessions and authenticated file transfer.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --port 9000 --workers 4
  python main.py --reload

Environment variables (or .env):
  SECRET_KEY    Token signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG         true generates a throwaway SECRET_KEY for local runs.
  DEMO_USERS    JSON object of username -> password, e.g. '{"admin": "admin123"}'.
  UPLOAD_DIR    Directory for uploaded files (default: ./uploads).

Revocations live in process memory, so with --workers > 1 a logout is only
seen by the worker that handled it.
"""

import argparse
import logging

import uvicorn

logger = logging.getLogger("tokengate")

_ENDPOINTS = (
    "GET  /health",
    "GET  /api/users",
    "GET  /api/products",
    "POST /api/auth/login",
    "POST /api/auth/logout (requires auth)",
    "GET  /api/auth/verify (requires auth)",
    "POST /api/files/upload (requires auth)",
    "GET  /api/files/download/{filename} (requires auth)",
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokengate",
        description="Run the TokenGate API server.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Port to listen on (default: 8080)")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes (default: 1)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.reload and args.workers > 1:
        parser.error("--reload cannot be combined with --workers")

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    logger.info("Server starting on %s:%d", args.host, args.port)
    logger.info("Endpoints:")
    for endpoint in _ENDPOINTS:
        logger.info("  - %s", endpoint)

    uvicorn.run("asgi:app", host=args.host, port=args.port, workers=args.workers, reload=args.reload)


if __name__ == "__main__":
    main()
