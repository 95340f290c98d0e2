"""
Probe configuration.

Priority (highest first):
1. Explicit overrides (CLI flags)
2. Environment variables
3. Config file (~/.checkout-auth-probe/config.json)
4. Built-in sandbox defaults
"""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, field_validator

from checkout_auth_probe.candidates import mask_secret

logger = structlog.get_logger(__name__)

DEFAULT_TENANT_ID = "68c05e15ad23f0f6aaa1ae51"
DEFAULT_API_KEY = "clb_test_4f8b2c1d6e9a7f3b5c8e2a1d4f7b9e3c"
DEFAULT_BASE_URL = "https://checkout.svelve.com/api/v1"
DEFAULT_TIMEOUT = 10.0

ENV_MAPPINGS = {
    "tenant_id": "CLUBIFY_CHECKOUT_TENANT_ID",
    "api_key": "CLUBIFY_CHECKOUT_API_KEY",
    "base_url": "CLUBIFY_CHECKOUT_API_URL",
    "timeout": "CHECKOUT_PROBE_TIMEOUT",
}


class ProbeSettings(BaseModel):
    """Effective settings for a probe run."""

    tenant_id: str = DEFAULT_TENANT_ID
    api_key: str = DEFAULT_API_KEY
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT

    @field_validator("tenant_id", "api_key", "base_url", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    def masked(self) -> dict[str, Any]:
        """Settings as a dict, safe for display."""
        data = self.model_dump()
        data["api_key"] = mask_secret(self.api_key)
        return data


def get_config_path() -> Path:
    """Get the configuration file path."""
    return Path.home() / ".checkout-auth-probe" / "config.json"


def load_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ProbeSettings:
    """
    Build settings from defaults, config file, environment and overrides.

    Overrides with a value of None are ignored, so argparse namespaces can be
    passed through without filtering.
    """
    values: dict[str, Any] = {}

    path = config_path or get_config_path()
    if path.exists():
        with open(path) as f:
            file_values = json.load(f)
        values.update({k: v for k, v in file_values.items() if k in ProbeSettings.model_fields})
        logger.debug("Loaded config file", path=str(path))

    env = os.environ if environ is None else environ
    for key, env_var in ENV_MAPPINGS.items():
        env_value = env.get(env_var)
        if env_value:
            values[key] = env_value

    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    return ProbeSettings.model_validate(values)


def save_settings(settings: ProbeSettings, config_path: Path | None = None) -> Path:
    """Save settings to the config file (owner-readable only, it holds the API key)."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(settings.model_dump(), f, indent=2)

    os.chmod(path, 0o600)
    return path
