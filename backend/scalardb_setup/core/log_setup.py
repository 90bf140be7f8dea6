"""Logging configuration shared by both API entry points."""

import logging

from scalardb_setup.config import settings

JSON_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}'
DEV_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging() -> None:
    """Configure the root logger; JSON lines in production, plain text in dev mode."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=DEV_FORMAT if settings.dev_mode else JSON_FORMAT,
    )
