# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level authprobe facade for scenario runs."""

from __future__ import annotations

from contextlib import suppress

from .config import ProbeConfig
from .http.client import AsyncHttpClient, create_default_http_client
from .scenario.models import ScenarioReport
from .scenario.runner import ScenarioRunner, StepListener
from .scenario.scenarios import get_scenario
from .scenario.steps import Scenario


class AuthProbe:
    """
    Convenience wrapper that wires one HTTP client and one config across scenario runs.
    """

    def __init__(
        self,
        config: ProbeConfig,
        http_client: AsyncHttpClient | None = None,
        *,
        listener: StepListener | None = None,
    ):
        self.config = config
        self.http_client = http_client or create_default_http_client(config.http)
        self.listener = listener

    async def run(self, scenario: str | Scenario) -> ScenarioReport:
        resolved = get_scenario(scenario) if isinstance(scenario, str) else scenario
        runner = ScenarioRunner(self.http_client, self.config, listener=self.listener)
        return await runner.run(resolved)

    async def aclose(self) -> None:
        with suppress(Exception):
            if hasattr(self.http_client, "aclose"):
                await self.http_client.aclose()

    async def __aenter__(self) -> AuthProbe:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()
