"""Executable entrypoint for the BabLab FastAPI server."""

from __future__ import annotations

import argparse
import os
import socket
from collections.abc import Sequence

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8020
APP_FACTORY = "bablab.api.app:create_app"
LOG_LEVELS: tuple[str, ...] = ("critical", "error", "warning", "info", "debug", "trace")


def _default_port() -> int:
    """Return API port from env with deterministic fallback."""
    raw_value = os.getenv("BABLAB_API_PORT", str(DEFAULT_PORT))
    try:
        port = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Invalid BABLAB_API_PORT value: {raw_value}") from exc
    if port < 1 or port > 65535:
        raise ValueError("BABLAB_API_PORT must be between 1 and 65535.")
    return port


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI args for API server runtime settings."""
    parser = argparse.ArgumentParser(description="Run BabLab API server.")
    parser.add_argument(
        "--host",
        default=os.getenv("BABLAB_API_HOST", DEFAULT_HOST),
        help=f"Bind host (default: {DEFAULT_HOST} or BABLAB_API_HOST).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=_default_port(),
        help=f"Bind port (default: {DEFAULT_PORT} or BABLAB_API_PORT).",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("BABLAB_API_LOG_LEVEL", "info").lower(),
        help="Uvicorn log level (default: info or BABLAB_API_LOG_LEVEL).",
    )
    args = parser.parse_args(argv)
    if args.port < 1 or args.port > 65535:
        parser.error("--port must be between 1 and 65535.")
    if args.log_level.lower() not in LOG_LEVELS:
        parser.error(f"--log-level must be one of: {', '.join(LOG_LEVELS)}.")
    args.log_level = args.log_level.lower()
    return args


def _is_port_available(host: str, port: int) -> bool:
    """Return True if a host/port can be bound by this process."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def _resolve_port(host: str, requested_port: int, max_attempts: int = 50) -> int:
    """Resolve a free port by scanning forward from the requested port."""
    max_candidate = min(65535, requested_port + max_attempts - 1)
    for candidate in range(requested_port, max_candidate + 1):
        if _is_port_available(host, candidate):
            return candidate
    raise RuntimeError(f"No available port found from {requested_port} to {max_candidate}.")


def main(argv: Sequence[str] | None = None) -> None:
    """Run BabLab API server with configurable host/port/log level."""
    import uvicorn

    args = _parse_args(argv)
    resolved_port = _resolve_port(args.host, args.port)
    if resolved_port != args.port:
        print(
            f"Requested port {args.port} is in use, starting BabLab API on {resolved_port} instead.",
            flush=True,
        )
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=args.host,
        port=resolved_port,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
