"""
Configuration loading for grafana-toolkit.

Priority order (highest → lowest):
  1. Environment variables (GRAFANA_URL, GRAFANA_TOKEN, GRAFANA_USER, GRAFANA_PASSWORD, …)
  2. macOS Keychain  (grafana-toolkit / grafana-url, grafana-token)
  3. ~/.config/grafana-toolkit/config.yaml

A service-account token is sent as a Bearer token. Without one, user and
password are used for HTTP basic auth.
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
import structlog

from grafana_toolkit.keychain import retrieve_secret

log = structlog.get_logger(__name__)

_CONFIG_FILE = Path.home() / ".config" / "grafana-toolkit" / "config.yaml"
_KEYCHAIN_TOKEN_ACCOUNT = "grafana-token"
_KEYCHAIN_URL_ACCOUNT = "grafana-url"


class Settings:
    """Runtime configuration resolved at startup."""

    def __init__(
        self,
        grafana_url: str,
        api_token: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        ssl_verify: bool = True,
        timeout: float = 30.0,
        debug: bool = False,
    ) -> None:
        self.grafana_url = grafana_url.rstrip("/")
        self.api_token = api_token
        self.user = user
        self.password = password
        self.ssl_verify = ssl_verify
        self.timeout = timeout
        self.debug = debug

    def __repr__(self) -> str:
        auth = "token" if self.api_token else "basic"
        return (
            f"Settings(url={self.grafana_url!r}, auth={auth}, "
            f"ssl_verify={self.ssl_verify}, timeout={self.timeout}, debug={self.debug})"
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "off", "")


def _load_yaml_config() -> dict:
    if _CONFIG_FILE.exists():
        with _CONFIG_FILE.open() as f:
            data = yaml.safe_load(f) or {}
        log.info("config.yaml_loaded", path=str(_CONFIG_FILE))
        return data
    return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Resolve and return the global Settings singleton.

    Raises ``RuntimeError`` if the URL or credentials cannot be found in any source.
    """
    yaml_cfg = _load_yaml_config()

    url = (
        os.environ.get("GRAFANA_URL")
        or retrieve_secret(_KEYCHAIN_URL_ACCOUNT)
        or yaml_cfg.get("grafana_url")
    )
    if not url:
        raise RuntimeError(
            "Grafana URL not found. Set GRAFANA_URL, store in Keychain, "
            f"or add grafana_url to {_CONFIG_FILE}"
        )

    token = (
        os.environ.get("GRAFANA_TOKEN")
        or retrieve_secret(_KEYCHAIN_TOKEN_ACCOUNT)
        or yaml_cfg.get("grafana_token")
    )
    user = os.environ.get("GRAFANA_USER") or yaml_cfg.get("grafana_user")
    password = os.environ.get("GRAFANA_PASSWORD") or yaml_cfg.get("grafana_password")
    if not token and not (user and password):
        raise RuntimeError(
            "Grafana credentials not found. Set GRAFANA_TOKEN (or GRAFANA_USER and "
            f"GRAFANA_PASSWORD), store a token in Keychain, or add them to {_CONFIG_FILE}"
        )

    ssl_verify = _as_bool(os.environ.get("GRAFANA_SSL_VERIFY", yaml_cfg.get("ssl_verify", True)))
    timeout = float(os.environ.get("GRAFANA_TIMEOUT", yaml_cfg.get("timeout", 30.0)))
    debug = _as_bool(os.environ.get("GRAFANA_DEBUG", yaml_cfg.get("debug", False)))

    settings = Settings(
        grafana_url=url,
        api_token=token,
        user=user,
        password=password,
        ssl_verify=ssl_verify,
        timeout=timeout,
        debug=debug,
    )
    log.info("config.resolved", settings=repr(settings))
    return settings
