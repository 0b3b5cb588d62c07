#!/usr/bin/env python3
"""Main entry point for the tournament bracket engine web server."""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_default_config


def setup_logging(level: str = "INFO"):
    """Configure logging for the web server."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def start_web_server():
    """Start the FastAPI web server."""
    config = get_default_config()
    setup_logging(config.system.log_level)

    import uvicorn

    from web.app import app

    host, port = config.server.host, config.server.port
    print("🏆 Starting Tournament Bracket Engine...")
    print(f"📡 API Documentation: http://localhost:{port}/docs")
    print(f"🗄️  Database: {config.database.path}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=config.system.log_level.lower(),
        access_log=True,
    )


def main():
    if len(sys.argv) > 1 and sys.argv[1] in ("-h", "--help"):
        print("Tournament Bracket Engine")
        print("=" * 40)
        print("   python main.py        (starts web server)")
        print("   PORT=9000 BRACKET_DB_PATH=/tmp/t.db python main.py")
        return
    start_web_server()


if __name__ == "__main__":
    main()
