# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header construction for probe requests."""

from __future__ import annotations


def build_probe_headers(
    *,
    api_key: str | None = None,
    access_token: str | None = None,
    body: bytes | None = None,
) -> dict[str, str]:
    """
    Return the headers every probe carries.

    - ``Content-Type``/``Content-Length`` only when there is a body (length in bytes).
    - ``apikey`` whenever a key is available.
    - ``Authorization: Bearer`` only when a session token was supplied.
    """
    headers: dict[str, str] = {}
    if body is not None:
        headers["Content-Type"] = "application/json"
        headers["Content-Length"] = str(len(body))
    if api_key:
        headers["apikey"] = api_key
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


__all__ = ["build_probe_headers"]
