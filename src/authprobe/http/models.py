# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Probe request/result data models."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit

from ..errors import ErrorCategory, categorize_exception, error_category_to_reason
from .headers import build_probe_headers

Headers = Mapping[str, str]

_DEFAULT_PORTS = {"http": 80, "https": 443}


def interpret_body(text: str) -> tuple[Any, bool]:
    """
    Decode a response body as JSON, falling back to the raw text.

    Returns ``(data, is_json)``. A body that is not JSON is not an error.
    """
    try:
        return json.loads(text), True
    except ValueError:
        return text, False


@dataclass(frozen=True)
class ProbeRequest:
    """A single outbound HTTP request. Immutable; build a new one per call."""

    method: str
    host: str
    port: int
    path: str
    headers: Headers = field(default_factory=dict)
    body: bytes | None = None
    scheme: str = "http"
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    @property
    def endpoint(self) -> str:
        """Short label used in console output, e.g. ``localhost:8000/auth/v1/user``."""
        return f"{self.netloc}{self.path}"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.netloc}{self.path}"

    @classmethod
    def for_endpoint(
        cls,
        base_url: str,
        path: str,
        *,
        method: str = "GET",
        api_key: str | None = None,
        access_token: str | None = None,
        json_body: Any = None,
        timeout: float | None = None,
    ) -> ProbeRequest:
        """Build a request for ``path`` relative to ``base_url`` with the standard probe headers."""
        parts = urlsplit(base_url)
        scheme = parts.scheme or "http"
        host = parts.hostname or "localhost"
        port = parts.port or _DEFAULT_PORTS.get(scheme, 80)
        prefix = parts.path.rstrip("/")
        full_path = f"{prefix}/{path.lstrip('/')}"

        body = None
        if json_body is not None:
            body = json.dumps(json_body, separators=(",", ":")).encode("utf-8")

        return cls(
            method=method,
            host=host,
            port=port,
            path=full_path,
            headers=build_probe_headers(api_key=api_key, access_token=access_token, body=body),
            body=body,
            scheme=scheme,
            timeout=timeout,
        )


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe. Exactly one of ``status_code`` or ``error`` is normally set."""

    endpoint: str
    status_code: int | None = None
    data: Any = None
    is_json: bool = False
    error: str | None = None
    error_category: ErrorCategory = ErrorCategory.NONE
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        """True when a response arrived, whatever its status."""
        return self.error is None and self.status_code is not None

    @property
    def timed_out(self) -> bool:
        return self.error_category == ErrorCategory.TIMEOUT

    @property
    def status_label(self) -> str:
        if self.status_code is not None:
            return str(self.status_code)
        if self.timed_out:
            return "TIMEOUT"
        return "ERROR"

    def field(self, name: str, default: Any = None) -> Any:
        """Return a top-level key of a JSON object body, or ``default``."""
        if isinstance(self.data, Mapping):
            return self.data.get(name, default)
        return default

    @classmethod
    def from_response(cls, endpoint: str, status_code: int, text: str, *, elapsed: float = 0.0) -> ProbeResult:
        data, is_json = interpret_body(text)
        return cls(endpoint=endpoint, status_code=status_code, data=data, is_json=is_json, elapsed=elapsed)

    @classmethod
    def from_exception(cls, endpoint: str, exc: BaseException, *, elapsed: float = 0.0) -> ProbeResult:
        category = categorize_exception(exc)
        return cls(
            endpoint=endpoint,
            error=str(exc) or error_category_to_reason(category),
            error_category=category,
            elapsed=elapsed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "data": self.data,
            "is_json": self.is_json,
            "error": self.error,
            "error_category": self.error_category.value,
            "elapsed": round(self.elapsed, 3),
        }


__all__ = ["Headers", "ProbeRequest", "ProbeResult", "interpret_body"]
