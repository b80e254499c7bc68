"""
Development server entry point.

Usage: python run_server.py
"""

from __future__ import annotations

from uvicorn import Config, Server

from app.core.config import get_settings


def main() -> None:
    settings = get_settings()
    config = Config(
        app="app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.app_env == "development",
        reload_dirs=["app"],
    )
    Server(config=config).run()


if __name__ == "__main__":
    main()
