import os
from pathlib import Path
from typing import Optional

import yaml

from yx_core.errors import YxError

DEFAULT_BASE_URL = "https://openapi-rdc.aliyuncs.com"
TOKEN_ENV_VAR = "YUNXIAO_ACCESS_TOKEN"

DEFAULT_CONFIG: dict = {
    "base_url": DEFAULT_BASE_URL,
    "timeout": 30,  # seconds per HTTP request
    "organization_id": None,
    "repository_id": None,  # default REPO for commands that accept one
    "token": None,
}


def load_config(config_path: str = ".yx.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .yx.yml in the current directory
      3. CLI argument overrides
      4. YUNXIAO_ACCESS_TOKEN for the token
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise YxError(f"Invalid config file {config_path}: expected a mapping at the top level.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        config["token"] = env_token

    timeout = config.get("timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise YxError(f"Invalid timeout in config: {timeout!r}. Expected a positive number of seconds.")

    return config


def resolve_organization_id(config: dict, org: str | None = None) -> str:
    """Return the explicit ``--org`` value, else the configured organization."""
    value = str(org or config.get("organization_id") or "").strip()
    if not value:
        raise YxError("Missing organization ID. Use --org or set organization_id in .yx.yml.")
    return value
