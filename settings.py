"""
App configuration.

Values come from Streamlit secrets (``.streamlit/secrets.toml`` or the
Community Cloud dashboard) first, then from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULTS = {
    "DATABASE_URL":         "sqlite:///certprep.db",
    "QUESTION_MODEL":       "claude-haiku-4-5-20251001",
    "QUESTION_FETCH_LIMIT": "500",
    "LOG_LEVEL":            "INFO",
}


@dataclass(frozen=True)
class Settings:
    database_url:      str
    anthropic_api_key: Optional[str]
    question_model:    str
    fetch_limit:       int
    log_level:         str


def _lookup(key, secrets, environ):
    if secrets is not None:
        try:
            value = secrets[key]
        except (KeyError, FileNotFoundError):
            value = None
        if value:
            return str(value)
    value = environ.get(key)
    if value:
        return value
    return DEFAULTS.get(key)


def load_settings(secrets=None, environ=None):
    environ = os.environ if environ is None else environ
    get = lambda key: _lookup(key, secrets, environ)
    try:
        fetch_limit = int(get("QUESTION_FETCH_LIMIT"))
    except ValueError:
        raise ValueError(f"QUESTION_FETCH_LIMIT must be an integer, got {get('QUESTION_FETCH_LIMIT')!r}") from None
    return Settings(
        database_url=get("DATABASE_URL"),
        anthropic_api_key=get("ANTHROPIC_API_KEY"),
        question_model=get("QUESTION_MODEL"),
        fetch_limit=max(1, fetch_limit),
        log_level=get("LOG_LEVEL").upper(),
    )
