# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for authprobe."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from urllib.parse import urlsplit

from .envfile import EnvConfig
from .errors import InvalidConfigurationError
from .version import __version__

DEFAULT_USER_AGENT = f"authprobe/{__version__}"
DEFAULT_API_KEY_VAR = "ANON_KEY"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _lookup(name: str, env: Mapping[str, str] | None, default: str) -> str:
    """Resolve ``name`` from the process environment, then the env file, then ``default``."""
    value = os.getenv(name)
    if value:
        return value
    if env is not None:
        value = env.get(name)
        if value:
            return value
    return default


def _check_base_url(name: str, url: str) -> None:
    try:
        parts = urlsplit(url)
        parts.port  # raises on a non-numeric or out-of-range port
    except ValueError as exc:
        raise InvalidConfigurationError(f"Invalid {name} {url!r}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidConfigurationError(f"Invalid {name} {url!r}: expected http(s)://host[:port]")


@dataclass
class HttpSettings:
    """HTTP client and settle-wait defaults."""

    timeout: float = 5.0
    health_timeout: float = 3.0
    user_agent: str = DEFAULT_USER_AGENT
    settle_initial_delay: float = 0.25
    settle_backoff_factor: float = 2.0
    settle_max_wait: float = 1.0

    @classmethod
    def from_env(cls) -> HttpSettings:
        """Create settings from environment variables (evaluated at call time)."""
        return cls(
            timeout=_float_env("AUTHPROBE_HTTP_TIMEOUT", cls.timeout),
            health_timeout=_float_env("AUTHPROBE_HEALTH_TIMEOUT", cls.health_timeout),
            user_agent=os.getenv("AUTHPROBE_USER_AGENT", cls.user_agent),
            settle_initial_delay=_float_env("AUTHPROBE_SETTLE_INITIAL_DELAY", cls.settle_initial_delay),
            settle_backoff_factor=_float_env("AUTHPROBE_SETTLE_BACKOFF", cls.settle_backoff_factor),
            settle_max_wait=_float_env("AUTHPROBE_SETTLE_MAX_WAIT", cls.settle_max_wait),
        )


@dataclass
class Topology:
    """Where the gateway, the auth service and the local stack are listening."""

    gateway_url: str = "http://localhost:8000"
    auth_direct_url: str = "http://localhost:9999"
    local_stack_url: str = "http://localhost:54321"
    mail_ui_url: str = "http://localhost:9000"

    def __post_init__(self) -> None:
        for item in fields(self):
            _check_base_url(item.name, getattr(self, item.name))

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Topology:
        return cls(
            gateway_url=_lookup("AUTHPROBE_GATEWAY_URL", env, cls.gateway_url),
            auth_direct_url=_lookup("AUTHPROBE_AUTH_DIRECT_URL", env, cls.auth_direct_url),
            local_stack_url=_lookup("AUTHPROBE_LOCAL_STACK_URL", env, cls.local_stack_url),
            mail_ui_url=_lookup("AUTHPROBE_MAIL_UI_URL", env, cls.mail_ui_url),
        )


@dataclass
class Credentials:
    """Test account used by the signup and login steps."""

    email: str = "test@example.com"
    password: str = "testpassword123"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Credentials:
        return cls(
            email=_lookup("AUTHPROBE_TEST_EMAIL", env, cls.email),
            password=_lookup("AUTHPROBE_TEST_PASSWORD", env, cls.password),
        )

    def as_payload(self) -> dict[str, str]:
        return {"email": self.email, "password": self.password}


@dataclass
class ProbeConfig:
    """Everything a run needs, built once and passed explicitly."""

    env: EnvConfig = field(default_factory=EnvConfig)
    http: HttpSettings = field(default_factory=HttpSettings)
    topology: Topology = field(default_factory=Topology)
    credentials: Credentials = field(default_factory=Credentials)
    api_key_var: str = DEFAULT_API_KEY_VAR

    @property
    def api_key(self) -> str | None:
        return self.env.get(self.api_key_var)

    @classmethod
    def from_env_config(cls, env: EnvConfig, *, api_key_var: str = DEFAULT_API_KEY_VAR) -> ProbeConfig:
        return cls(
            env=env,
            http=HttpSettings.from_env(),
            topology=Topology.from_env(env),
            credentials=Credentials.from_env(env),
            api_key_var=api_key_var,
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()


__all__ = [
    "DEFAULT_API_KEY_VAR",
    "DEFAULT_USER_AGENT",
    "Credentials",
    "HttpSettings",
    "ProbeConfig",
    "Topology",
    "load_http_settings",
]
