# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed AsyncHttpClient implementation."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from ..config import HttpSettings, load_http_settings
from .client import AsyncHttpClient
from .models import ProbeRequest, ProbeResult

logger = logging.getLogger(__name__)


class HttpxClient(AsyncHttpClient):
    """Asynchronous httpx client wrapper. One attempt per call, no retries."""

    def __init__(self, settings: HttpSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.AsyncClient(
            follow_redirects=False,
            timeout=self.settings.timeout,
        )

    async def send(self, request: ProbeRequest) -> ProbeResult:
        headers = dict(request.headers)
        headers.setdefault("User-Agent", self.settings.user_agent)
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        started = time.monotonic()
        try:
            # wait_for bounds the whole exchange; httpx's own timeout is per phase.
            response = await asyncio.wait_for(
                self._client.request(
                    request.method,
                    request.url,
                    headers=headers,
                    content=request.body,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except Exception as exc:  # noqa: BLE001
            elapsed = time.monotonic() - started
            result = ProbeResult.from_exception(request.endpoint, exc, elapsed=elapsed)
            logger.debug("%s %s failed after %.2fs: %s (%s)", request.method, request.url, elapsed, result.error, result.error_category.value)
            return result

        elapsed = time.monotonic() - started
        logger.debug("%s %s -> %s in %.2fs", request.method, request.url, response.status_code, elapsed)
        return ProbeResult.from_response(request.endpoint, response.status_code, response.text, elapsed=elapsed)

    async def aclose(self) -> None:
        await self._client.aclose()
