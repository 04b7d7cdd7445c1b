"""
Launch the mission API:

    python -m mission_sim.web.run_server

Picks the next free port if the requested one is taken, then starts uvicorn.
"""
from __future__ import annotations

import argparse
import socket
import sys


def find_available_port(host: str, start_port: int, *, max_tries: int = 50) -> tuple[int, bool]:
    """First bindable port at or after ``start_port`` and whether it moved."""
    if max_tries < 1:
        raise ValueError("max_tries must be >= 1")

    failures: list[OSError] = []
    for port in range(start_port, start_port + max_tries):
        try:
            with socket.create_server((host, port), reuse_port=False):
                pass
        except OSError as exc:
            failures.append(exc)
        else:
            return port, port != start_port

    raise RuntimeError(
        f"No available port in {start_port}-{start_port + max_tries - 1} on {host} (last error: {failures[-1]})"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mission-sim-server",
        description="Run the mission deployment API.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host to listen on (default: %(default)s).")
    parser.add_argument("--port", type=int, default=8000, help="Starting port (default: %(default)s).")
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn --reload.")
    args = parser.parse_args(argv)

    try:
        chosen_port, did_fallback = find_available_port(args.host, args.port, max_tries=50)
    except RuntimeError as exc:
        print(f"[mission-sim] Failed to select a free port: {exc}", file=sys.stderr)
        return 2

    if did_fallback:
        print(f"[mission-sim] Serving on port {chosen_port} ({args.port} was in use).")

    import uvicorn

    try:
        uvicorn.run("mission_sim.web.main:app", host=args.host, port=chosen_port, reload=args.reload)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
