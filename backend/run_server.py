#!/usr/bin/env python3
"""
Start the CoWorks API with uvicorn.

Usage:
  python run_server.py [--host 127.0.0.1] [--port 8000] [--reload]
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import uvicorn

from coworks.core.config import settings
from coworks.core.logging_setup import logger


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the CoWorks API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    args = parser.parse_args()

    logger.info("Starting %s on http://%s:%d", settings.project_name, args.host, args.port)
    uvicorn.run(
        "coworks.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
