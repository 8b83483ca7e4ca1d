from __future__ import annotations

import os

from huggingface_hub import get_token


USER_ENV_CANDIDATES = ("HADOOP_USER_NAME", "USER", "USERNAME")


def resolve_user(config_user: str | None = None) -> str | None:
    """Resolve the acting user from config first, then the process environment."""
    if config_user and config_user.strip():
        return config_user.strip()

    for env_name in USER_ENV_CANDIDATES:
        value = os.getenv(env_name, "").strip()
        if value:
            return value
    return None


def resolve_hf_token(config_token: str | None = None) -> str | None:
    """Resolve an HF token from env, then config, then the huggingface_hub login cache."""
    for env_name in ("HF_TOKEN", "HUGGING_FACE_HUB_TOKEN"):
        value = os.getenv(env_name, "").strip()
        if value:
            return value

    if config_token and config_token.strip():
        return config_token.strip()

    cached = get_token()
    return cached.strip() if cached else None
