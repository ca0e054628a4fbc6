"""
CLI entrypoint for the backend health proxy.

Usage:
  arrival-proxy --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse


def main() -> None:
    parser = argparse.ArgumentParser(description="Run Arrival Console health proxy")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    import uvicorn

    uvicorn.run("arrival.api:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
