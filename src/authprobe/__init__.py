# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
authprobe package entrypoint.

authprobe sends a short, fixed sequence of HTTP probes (signup, password login,
user info, a protected REST read, health checks) to a locally running auth
gateway and reports a verdict per step. HTTP behavior sits behind an injectable
async client interface and every value is modeled with typed dataclasses.
"""

from .config import Credentials, HttpSettings, ProbeConfig, Topology, load_http_settings
from .envfile import EnvConfig, load_env_file, parse_env_lines
from .errors import (
    AuthProbeError,
    ConfigurationError,
    ConfigurationMissingError,
    ErrorCategory,
    InvalidConfigurationError,
)
from .http import (
    AsyncHttpClient,
    HttpxClient,
    ProbeRequest,
    ProbeResult,
    StubHttpClient,
    create_default_http_client,
)
from .log import setup_logging
from .runtime import AuthProbe
from .scenario import (
    SCENARIOS,
    ProbeStep,
    Scenario,
    ScenarioReport,
    ScenarioRunner,
    SettleWait,
    StepOutcome,
    StepStatus,
    get_scenario,
)
from .version import __version__

__all__ = [
    "SCENARIOS",
    "AsyncHttpClient",
    "AuthProbe",
    "AuthProbeError",
    "ConfigurationError",
    "ConfigurationMissingError",
    "Credentials",
    "EnvConfig",
    "ErrorCategory",
    "HttpSettings",
    "HttpxClient",
    "InvalidConfigurationError",
    "ProbeConfig",
    "ProbeRequest",
    "ProbeResult",
    "ProbeStep",
    "Scenario",
    "ScenarioReport",
    "ScenarioRunner",
    "SettleWait",
    "StepOutcome",
    "StepStatus",
    "StubHttpClient",
    "Topology",
    "create_default_http_client",
    "get_scenario",
    "load_env_file",
    "load_http_settings",
    "parse_env_lines",
    "setup_logging",
    "__version__",
]
