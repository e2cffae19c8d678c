"""Logging setup for CertPrep."""

import logging


def configure_logging(level="INFO"):
    """Configure basic logging and return the app logger."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("certprep")
