# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Run a scenario's steps in order, skipping those whose prerequisites did not succeed."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..config import ProbeConfig
from ..errors import error_category_to_reason
from ..http.client import AsyncHttpClient
from ..http.models import ProbeResult
from .models import ScenarioReport, StepOutcome, StepStatus, check_transition
from .steps import ProbeStep, Scenario, StepContext

logger = logging.getLogger(__name__)

StepListener = Callable[[ProbeStep, StepStatus, StepOutcome | None], None]


def _failure_reason(result: ProbeResult) -> str:
    if result.error is not None:
        label = error_category_to_reason(result.error_category)
        return f"{label}: {result.error}" if label and label != result.error else result.error
    return f"Unexpected response (status {result.status_code})"


class ScenarioRunner:
    """
    Drives one scenario against an AsyncHttpClient.

    Each stage's runnable steps are dispatched together and the next stage starts once every
    one of them has a result. A failed step only affects steps that declare it as a prerequisite.
    """

    def __init__(self, client: AsyncHttpClient, config: ProbeConfig, *, listener: StepListener | None = None):
        self.client = client
        self.config = config
        self.listener = listener
        self._states: dict[str, StepStatus] = {}

    @property
    def states(self) -> dict[str, StepStatus]:
        return dict(self._states)

    def _set_state(self, step: ProbeStep, status: StepStatus, outcome: StepOutcome | None = None) -> None:
        check_transition(step.name, self._states[step.name], status)
        self._states[step.name] = status
        if self.listener is not None:
            self.listener(step, status, outcome)

    def _skip_reason(self, step: ProbeStep) -> str | None:
        missing = [name for name in step.requires if self._states.get(name) != StepStatus.SUCCEEDED]
        if missing:
            return f"Skipped: requires {', '.join(missing)}"
        if step.requires_any and not any(self._states.get(name) == StepStatus.SUCCEEDED for name in step.requires_any):
            return f"Skipped: requires any of {', '.join(step.requires_any)}"
        return None

    async def _run_step(self, step: ProbeStep, context: StepContext) -> StepOutcome:
        self._set_state(step, StepStatus.RUNNING)
        request = step.build(context)
        logger.info("[%s] %s %s", step.name, request.method, request.url)
        result = await self.client.send(request)

        succeeded = result.ok and step.check(result)
        values: dict[str, str] = {}
        if succeeded and step.extract is not None:
            values = dict(step.extract(result))
        details: dict[str, Any] = {}
        if step.describe is not None and result.ok:
            details = dict(step.describe(result, context))

        status = StepStatus.SUCCEEDED if succeeded else StepStatus.FAILED
        outcome = StepOutcome(
            name=step.name,
            title=step.title,
            status=status,
            result=result,
            reason="" if succeeded else _failure_reason(result),
            details=details,
            values=values,
        )
        self._set_state(step, status, outcome)
        return outcome

    async def run(self, scenario: Scenario) -> ScenarioReport:
        self._states = {step.name: StepStatus.NOT_RUN for step in scenario.steps}
        outcomes: dict[str, StepOutcome] = {}
        values: dict[str, str] = {}

        for stage in scenario.stages:
            runnable: list[ProbeStep] = []
            for step in stage:
                reason = self._skip_reason(step)
                if reason is None:
                    runnable.append(step)
                    continue
                outcome = StepOutcome(name=step.name, title=step.title, status=StepStatus.SKIPPED, reason=reason)
                outcomes[step.name] = outcome
                self._set_state(step, StepStatus.SKIPPED, outcome)

            if not runnable:
                continue

            context = StepContext(config=self.config, values=values)
            for step in runnable:
                if step.settle is not None:
                    report = await step.settle.wait(self.client, context)
                    logger.debug("[%s] settled after %.2fs (polls=%d, ready=%s)", step.name, report.waited, report.polls, report.ready)

            results = await asyncio.gather(*(self._run_step(step, context) for step in runnable))
            for outcome in results:
                outcomes[outcome.name] = outcome
                values.update(outcome.values)

        return ScenarioReport(
            scenario=scenario.name,
            description=scenario.description,
            outcomes=tuple(outcomes[step.name] for step in scenario.steps),
        )


__all__ = ["ScenarioRunner", "StepListener"]
