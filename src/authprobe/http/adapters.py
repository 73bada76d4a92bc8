# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process AsyncHttpClient implementations."""

from __future__ import annotations

from ..errors import ErrorCategory
from .client import AsyncHttpClient
from .models import ProbeRequest, ProbeResult


class StubHttpClient(AsyncHttpClient):
    """Deterministic, programmable AsyncHttpClient for tests and dry runs.

    Responses are keyed by full URL first, then by path.
    """

    def __init__(self, responses: dict[str, ProbeResult] | None = None):
        self._responses = responses or {}
        self.requests: list[ProbeRequest] = []
        self.closed = False

    def add(self, key: str, response: ProbeResult) -> None:
        self._responses[key] = response

    async def send(self, request: ProbeRequest) -> ProbeResult:
        self.requests.append(request)
        for key in (request.url, request.path):
            if key in self._responses:
                return self._responses[key]
        return ProbeResult(
            endpoint=request.endpoint,
            error="No stubbed response configured",
            error_category=ErrorCategory.CONNECTION_ERROR,
        )

    def paths(self) -> list[str]:
        return [request.path for request in self.requests]

    async def aclose(self) -> None:
        self.closed = True
