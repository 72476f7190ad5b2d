"""Точка входа MemeRadar API."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import get_settings
from radar.logging_config import setup_logging
from radar.web.app import create_app


def main() -> None:
    settings = get_settings()
    setup_logging(json=settings.is_production, level="INFO" if settings.is_production else "DEBUG")
    app = create_app()
    logger.info("Запуск uvicorn на {host}:{port}", host=settings.api.host, port=settings.api.port)
    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_config=None)


if __name__ == "__main__":
    main()
