"""Configuration loader for MAM sessions.

Loads config/mam.yaml (if present), then applies environment overrides:
MAM_PROVIDER, MAM_SEED, MAM_CODEC. A .env file in the working directory
is read first.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from mam.channel.fragments import DEFAULT_CAPACITY, DEFAULT_MAX_AGE_SECONDS
from mam.channel.state import DEFAULT_POLL_SECONDS, DEFAULT_SECURITY
from mam.crypto.curl import DEFAULT_ROUNDS

WORKSPACE = Path(__file__).resolve().parent.parent
CONFIG_PATH = WORKSPACE / "config" / "mam.yaml"

_ENV_OVERRIDES = {
    "MAM_PROVIDER": "provider",
    "MAM_SEED": "seed",
    "MAM_CODEC": "codec",
}


class MamConfig(BaseModel):
    """Session settings. Every field has a usable default except provider."""

    provider: str = "http://localhost:14265"
    seed: str | None = Field(default=None, repr=False)
    security: int = Field(default=DEFAULT_SECURITY, ge=1, le=3)
    depth: int = Field(default=3, ge=1)
    mwm: int = Field(default=9, ge=1)
    hash_rounds: int = Field(default=DEFAULT_ROUNDS, ge=1)
    listen_timeout: float = Field(default=DEFAULT_POLL_SECONDS, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    rate_limit: float = Field(default=10.0, gt=0)
    fragment_capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    fragment_max_age: float | None = DEFAULT_MAX_AGE_SECONDS
    codec: str | None = None


def load_config(path: Path | str | None = None, env: bool = True) -> MamConfig:
    """Load config from YAML plus environment. Missing file means defaults."""
    config_path = Path(path) if path is not None else CONFIG_PATH
    data: dict[str, Any] = {}
    if config_path.exists():
        data = yaml.safe_load(config_path.read_text()) or {}

    if env:
        load_dotenv()
        for var, key in _ENV_OVERRIDES.items():
            value = os.environ.get(var)
            if value:
                data[key] = value

    return MamConfig(**data)
