# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import StubHttpClient
from .client import AsyncHttpClient, create_default_http_client
from .headers import build_probe_headers
from .httpx_client import HttpxClient
from .models import Headers, ProbeRequest, ProbeResult, interpret_body

__all__ = [
    "AsyncHttpClient",
    "Headers",
    "HttpxClient",
    "ProbeRequest",
    "ProbeResult",
    "StubHttpClient",
    "build_probe_headers",
    "create_default_http_client",
    "interpret_body",
]
