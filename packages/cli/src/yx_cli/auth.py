"""Yunxiao token resolution.

Resolution order (stops at first success):
  1. YUNXIAO_ACCESS_TOKEN environment variable (CI / explicit override)
  2. ``token`` in .yx.yml
"""

from __future__ import annotations

import logging
import os

from yx_core.config import TOKEN_ENV_VAR

logger = logging.getLogger(__name__)


def resolve_token(config: dict) -> str | None:
    """Return a Yunxiao token or None if no source provides one.

    Never raises; callers should check for None and emit a UsageError.
    """
    token = os.environ.get(TOKEN_ENV_VAR)
    if token:
        return token.strip()

    configured = config.get("token")
    if isinstance(configured, str) and configured.strip():
        logger.debug("Using token from config file.")
        return configured.strip()

    return None
