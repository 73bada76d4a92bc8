# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Built-in probe steps and the scenarios composed from them."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from ..config import Topology
from ..http.models import ProbeRequest, ProbeResult
from .settle import SettleWait
from .steps import ProbeStep, Scenario, StepContext, sequential

SIGNUP_PATH = "/auth/v1/signup"
TOKEN_PATH = "/auth/v1/token?grant_type=password"
USER_PATH = "/auth/v1/user"
PROFILES_PATH = "/rest/v1/profiles"
AUTH_HEALTH_PATH = "/auth/v1/health"
DIRECT_HEALTH_PATH = "/health"

ACCESS_TOKEN = "access_token"
TOKEN_PREVIEW_CHARS = 30
RESPONSE_PREVIEW_CHARS = 100

BaseUrl = Callable[[Topology], str]


def _gateway(topology: Topology) -> str:
    return topology.gateway_url


def _local_stack(topology: Topology) -> str:
    return topology.local_stack_url


def _auth_direct(topology: Topology) -> str:
    return topology.auth_direct_url


def _message(data: Any) -> str | None:
    """Pull the human-readable error message out of a GoTrue/PostgREST error body."""
    if not isinstance(data, Mapping):
        return None
    for key in ("msg", "error_description", "message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def user_id(result: ProbeResult) -> str | None:
    """Signup answers with the user object, or with a session wrapping it when auto-confirm is on."""
    value = result.field("id")
    if value:
        return str(value)
    user = result.field("user")
    if isinstance(user, Mapping) and user.get("id"):
        return str(user["id"])
    return None


def email_not_confirmed(result: ProbeResult) -> bool:
    if result.status_code != 400:
        return False
    if result.field("error_code") == "email_not_confirmed":
        return True
    return _message(result.data) == "Email not confirmed"


# signup


def _build_signup(base: BaseUrl) -> Callable[[StepContext], ProbeRequest]:
    def build(context: StepContext) -> ProbeRequest:
        return ProbeRequest.for_endpoint(
            base(context.config.topology),
            SIGNUP_PATH,
            method="POST",
            api_key=context.api_key,
            json_body=context.config.credentials.as_payload(),
        )

    return build


def _signup_succeeded(result: ProbeResult) -> bool:
    return result.status_code == 200 and user_id(result) is not None


def _describe_signup(result: ProbeResult, context: StepContext) -> dict[str, Any]:
    details: dict[str, Any] = {"email": context.config.credentials.email}
    identifier = user_id(result)
    if identifier:
        details["id"] = identifier
    message = _message(result.data)
    if message:
        details["message"] = message
    return details


def signup_step(
    name: str = "signup",
    *,
    title: str = "User Signup",
    base: BaseUrl = _gateway,
    requires_any: tuple[str, ...] = (),
) -> ProbeStep:
    return ProbeStep(
        name=name,
        title=title,
        build=_build_signup(base),
        check=_signup_succeeded,
        requires_any=requires_any,
        describe=_describe_signup,
    )


# login


def _build_login(context: StepContext) -> ProbeRequest:
    return ProbeRequest.for_endpoint(
        context.config.topology.gateway_url,
        TOKEN_PATH,
        method="POST",
        api_key=context.api_key,
        json_body=context.config.credentials.as_payload(),
    )


def _login_succeeded(result: ProbeResult) -> bool:
    token = result.field(ACCESS_TOKEN)
    return result.status_code == 200 and isinstance(token, str) and bool(token)


def _extract_token(result: ProbeResult) -> dict[str, str]:
    return {ACCESS_TOKEN: result.field(ACCESS_TOKEN)}


def _describe_login(result: ProbeResult, context: StepContext) -> dict[str, Any]:
    if _login_succeeded(result):
        token = result.field(ACCESS_TOKEN)
        return {"access_token": f"{token[:TOKEN_PREVIEW_CHARS]}..."}
    details: dict[str, Any] = {}
    message = _message(result.data)
    if message:
        details["message"] = message
    if email_not_confirmed(result):
        details["hint"] = (
            f"Confirm {context.config.credentials.email} first: open {context.config.topology.mail_ui_url}, "
            "follow the confirmation link in the email, then run this again"
        )
    return details


def _build_gateway_health(context: StepContext) -> ProbeRequest:
    return ProbeRequest.for_endpoint(
        context.config.topology.gateway_url,
        AUTH_HEALTH_PATH,
        api_key=context.api_key,
        timeout=context.config.http.health_timeout,
    )


def login_step(*, requires: tuple[str, ...] = (), settle: SettleWait | None = None) -> ProbeStep:
    return ProbeStep(
        name="login",
        title="User Login",
        build=_build_login,
        check=_login_succeeded,
        requires=requires,
        extract=_extract_token,
        describe=_describe_login,
        settle=settle,
    )


# authorized reads


def _build_user_info(context: StepContext) -> ProbeRequest:
    return ProbeRequest.for_endpoint(
        context.config.topology.gateway_url,
        USER_PATH,
        api_key=context.api_key,
        access_token=context.access_token,
    )


def _describe_user_info(result: ProbeResult, context: StepContext) -> dict[str, Any]:  # noqa: ARG001
    if result.status_code != 200:
        return {}
    return {
        "email": result.field("email"),
        "id": result.field("id"),
        "email_confirmed": bool(result.field("email_confirmed_at")),
    }


def user_info_step() -> ProbeStep:
    return ProbeStep(
        name="user_info",
        title="User Info",
        build=_build_user_info,
        requires=("login",),
        describe=_describe_user_info,
    )


def _build_protected(context: StepContext) -> ProbeRequest:
    return ProbeRequest.for_endpoint(
        context.config.topology.gateway_url,
        PROFILES_PATH,
        api_key=context.api_key,
        access_token=context.access_token,
    )


def _describe_protected(result: ProbeResult, context: StepContext) -> dict[str, Any]:  # noqa: ARG001
    rendered = json.dumps(result.data) if result.is_json else str(result.data)
    if len(rendered) > RESPONSE_PREVIEW_CHARS:
        rendered = f"{rendered[:RESPONSE_PREVIEW_CHARS]}..."
    return {"response": rendered}


def protected_step() -> ProbeStep:
    return ProbeStep(
        name="protected",
        title="Protected API Endpoint",
        build=_build_protected,
        requires=("login",),
        describe=_describe_protected,
    )


# health


def health_step(name: str, title: str, base: BaseUrl, path: str) -> ProbeStep:
    def build(context: StepContext) -> ProbeRequest:
        return ProbeRequest.for_endpoint(
            base(context.config.topology),
            path,
            api_key=context.api_key,
            timeout=context.config.http.health_timeout,
        )

    return ProbeStep(name=name, title=title, build=build)


def _settle_for_login() -> SettleWait:
    return SettleWait(readiness=_build_gateway_health)


def _build_scenarios() -> dict[str, Scenario]:
    auth = sequential(
        "auth",
        "Sign up the test user through the gateway, then log in",
        signup_step(),
        login_step(settle=_settle_for_login()),
    )
    complete = sequential(
        "complete",
        "Log in, then read user info and a protected resource with the session token",
        login_step(),
        user_info_step(),
        protected_step(),
    )
    direct = Scenario(
        name="direct",
        description="Check the auth service directly and the local stack, then sign up on the local stack",
        stages=(
            (
                health_step("health_direct", "Auth Service Health", _auth_direct, DIRECT_HEALTH_PATH),
                health_step("health_local", "Local Stack Auth Health", _local_stack, AUTH_HEALTH_PATH),
            ),
            (
                signup_step(
                    "signup_direct",
                    title="User Signup (Direct)",
                    base=_local_stack,
                    requires_any=("health_direct", "health_local"),
                ),
            ),
        ),
    )
    full = sequential(
        "full",
        "Sign up, log in, then read user info and a protected resource",
        signup_step(),
        login_step(settle=_settle_for_login()),
        user_info_step(),
        protected_step(),
    )
    return {scenario.name: scenario for scenario in (auth, complete, direct, full)}


SCENARIOS: dict[str, Scenario] = _build_scenarios()
DEFAULT_SCENARIO = "complete"


def get_scenario(name: str) -> Scenario:
    try:
        return SCENARIOS[name]
    except KeyError:
        raise KeyError(f"Unknown scenario {name!r}; choose from {', '.join(sorted(SCENARIOS))}") from None


__all__ = [
    "ACCESS_TOKEN",
    "AUTH_HEALTH_PATH",
    "DEFAULT_SCENARIO",
    "DIRECT_HEALTH_PATH",
    "PROFILES_PATH",
    "SCENARIOS",
    "SIGNUP_PATH",
    "TOKEN_PATH",
    "USER_PATH",
    "email_not_confirmed",
    "get_scenario",
    "health_step",
    "login_step",
    "protected_step",
    "signup_step",
    "user_id",
    "user_info_step",
]
