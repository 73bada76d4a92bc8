# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Bounded wait before a step that depends on backend state settling."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..http.client import AsyncHttpClient
from ..http.models import ProbeRequest

if TYPE_CHECKING:
    from .steps import StepContext

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class SettleReport:
    waited: float
    polls: int
    ready: bool | None


@dataclass(frozen=True)
class SettleWait:
    """
    Wait for the backend to settle, never longer than ``max_wait`` seconds.

    With a ``readiness`` request, poll it with exponential backoff until it answers 2xx.
    Without one, pause ``initial_delay`` once. Unset fields fall back to HttpSettings.
    The wait never decides a step's outcome.
    """

    readiness: Callable[[StepContext], ProbeRequest] | None = None
    initial_delay: float | None = None
    backoff_factor: float | None = None
    max_wait: float | None = None

    async def wait(
        self,
        client: AsyncHttpClient,
        context: StepContext,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> SettleReport:
        settings = context.config.http
        delay = self.initial_delay if self.initial_delay is not None else settings.settle_initial_delay
        backoff = self.backoff_factor if self.backoff_factor is not None else settings.settle_backoff_factor
        max_wait = self.max_wait if self.max_wait is not None else settings.settle_max_wait

        if max_wait <= 0:
            return SettleReport(waited=0.0, polls=0, ready=None)

        started = clock()
        deadline = started + max_wait

        if self.readiness is None:
            pause = max(0.0, min(delay, max_wait))
            await sleep(pause)
            return SettleReport(waited=pause, polls=0, ready=None)

        polls = 0
        while True:
            result = await client.send(self.readiness(context))
            polls += 1
            if result.status_code is not None and 200 <= result.status_code < 300:
                return SettleReport(waited=clock() - started, polls=polls, ready=True)
            remaining = deadline - clock()
            if remaining <= 0:
                break
            await sleep(min(delay, remaining))
            delay *= backoff

        logger.info("Backend not ready after %.2fs (%d polls); continuing", max_wait, polls)
        return SettleReport(waited=clock() - started, polls=polls, ready=False)


__all__ = ["SettleReport", "SettleWait"]
