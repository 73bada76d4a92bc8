# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio

import pytest

from authprobe.errors import ErrorCategory
from authprobe.http import StubHttpClient
from authprobe.http.models import ProbeRequest, ProbeResult
from authprobe.scenario import ProbeStep, Scenario, ScenarioRunner, StepStateError, StepStatus, get_scenario
from authprobe.scenario.models import check_transition
from authprobe.scenario.scenarios import PROFILES_PATH, TOKEN_PATH, USER_PATH
from authprobe.scenario.steps import sequential


def _ok(data, status=200):
    return ProbeResult(endpoint="stub", status_code=status, data=data, is_json=isinstance(data, (dict, list)))


def _step(name, path, *, requires=(), requires_any=()):
    return ProbeStep(
        name=name,
        title=name.title(),
        build=lambda context: ProbeRequest.for_endpoint(context.config.topology.gateway_url, path, api_key=context.api_key),
        requires=requires,
        requires_any=requires_any,
    )


@pytest.mark.asyncio
async def test_login_without_token_skips_dependents(probe_config):
    stub = StubHttpClient({TOKEN_PATH: _ok({"error": "invalid_grant"}, status=200)})
    runner = ScenarioRunner(stub, probe_config)

    report = await runner.run(get_scenario("complete"))

    assert report.outcome("login").status == StepStatus.FAILED
    assert report.outcome("user_info").status == StepStatus.SKIPPED
    assert report.outcome("protected").status == StepStatus.SKIPPED
    assert "login" in report.outcome("user_info").reason
    assert stub.paths() == [TOKEN_PATH]
    assert (report.succeeded, report.failed, report.skipped) == (0, 1, 2)


@pytest.mark.asyncio
async def test_login_token_is_the_bearer_for_dependent_steps(probe_config):
    stub = StubHttpClient(
        {
            TOKEN_PATH: _ok({"access_token": "jwt-token-value", "token_type": "bearer"}),
            USER_PATH: _ok({"id": "u1", "email": "test@example.com", "email_confirmed_at": "2025-01-01T00:00:00Z"}),
            PROFILES_PATH: _ok([{"id": "u1"}]),
        }
    )
    report = await ScenarioRunner(stub, probe_config).run(get_scenario("complete"))

    assert report.all_succeeded is True
    login, user_info, protected = stub.requests
    assert "Authorization" not in login.headers
    assert user_info.headers["Authorization"] == "Bearer jwt-token-value"
    assert protected.headers["Authorization"] == "Bearer jwt-token-value"
    assert protected.headers["apikey"] == "abc123"
    assert report.outcome("user_info").details["email_confirmed"] is True


@pytest.mark.asyncio
async def test_failed_step_does_not_abort_independent_steps(probe_config):
    stub = StubHttpClient({"/b": _ok({})})
    scenario = sequential("s", "independent", _step("a", "/a"), _step("b", "/b"))

    report = await ScenarioRunner(stub, probe_config).run(scenario)

    assert report.outcome("a").status == StepStatus.FAILED
    assert report.outcome("a").result.error_category == ErrorCategory.CONNECTION_ERROR
    assert report.outcome("b").status == StepStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_non_json_body_is_reported_not_raised(probe_config):
    stub = StubHttpClient({"/a": ProbeResult(endpoint="stub", status_code=502, data="Bad Gateway")})
    report = await ScenarioRunner(stub, probe_config).run(sequential("s", "", _step("a", "/a")))

    outcome = report.outcome("a")
    assert outcome.status == StepStatus.FAILED
    assert outcome.result.data == "Bad Gateway"
    assert outcome.result.status_code == 502
    assert "502" in outcome.reason


@pytest.mark.asyncio
async def test_requires_any_runs_when_one_prerequisite_succeeds(probe_config):
    stub = StubHttpClient({"/one": _ok({}), "/three": _ok({})})
    scenario = Scenario(
        name="any",
        description="",
        stages=(
            (_step("one", "/one"), _step("two", "/two")),
            (_step("three", "/three", requires_any=("one", "two")),),
        ),
    )

    report = await ScenarioRunner(stub, probe_config).run(scenario)

    assert report.outcome("two").status == StepStatus.FAILED
    assert report.outcome("three").status == StepStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_requires_any_skips_when_none_succeed(probe_config):
    stub = StubHttpClient()
    report = await ScenarioRunner(stub, probe_config).run(get_scenario("direct"))

    assert report.outcome("health_direct").status == StepStatus.FAILED
    assert report.outcome("health_local").status == StepStatus.FAILED
    assert report.outcome("signup_direct").status == StepStatus.SKIPPED
    assert len(stub.requests) == 2


@pytest.mark.asyncio
async def test_stage_steps_are_dispatched_concurrently(probe_config):
    in_flight = 0
    peak = 0

    class SlowClient:
        async def send(self, request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return ProbeResult(endpoint=request.endpoint, status_code=200)

    scenario = Scenario(name="par", description="", stages=((_step("a", "/a"), _step("b", "/b")),))
    report = await ScenarioRunner(SlowClient(), probe_config).run(scenario)

    assert peak == 2
    assert report.succeeded == 2


@pytest.mark.asyncio
async def test_listener_sees_every_transition(probe_config):
    events = []
    stub = StubHttpClient({TOKEN_PATH: _ok({"msg": "Invalid login credentials"}, status=400)})
    runner = ScenarioRunner(stub, probe_config, listener=lambda step, status, outcome: events.append((step.name, status)))

    await runner.run(get_scenario("complete"))

    assert events == [
        ("login", StepStatus.RUNNING),
        ("login", StepStatus.FAILED),
        ("user_info", StepStatus.SKIPPED),
        ("protected", StepStatus.SKIPPED),
    ]
    assert all(status.terminal for status in runner.states.values())


def test_check_transition_rejects_reentry():
    check_transition("a", StepStatus.NOT_RUN, StepStatus.RUNNING)
    check_transition("a", StepStatus.NOT_RUN, StepStatus.SKIPPED)
    check_transition("a", StepStatus.RUNNING, StepStatus.FAILED)
    with pytest.raises(StepStateError):
        check_transition("a", StepStatus.SUCCEEDED, StepStatus.RUNNING)
    with pytest.raises(StepStateError):
        check_transition("a", StepStatus.NOT_RUN, StepStatus.SUCCEEDED)
    with pytest.raises(StepStateError):
        check_transition("a", StepStatus.SKIPPED, StepStatus.RUNNING)


def test_scenario_rejects_dependency_on_later_or_same_stage():
    with pytest.raises(ValueError):
        sequential("bad", "", _step("b", "/b", requires=("a",)), _step("a", "/a"))
    with pytest.raises(ValueError):
        Scenario(name="bad", description="", stages=((_step("a", "/a"), _step("b", "/b", requires=("a",))),))
    with pytest.raises(ValueError):
        sequential("dup", "", _step("a", "/a"), _step("a", "/a"))


def test_report_to_dict_shape(probe_config):
    stub = StubHttpClient({TOKEN_PATH: _ok({"access_token": "t"})})
    report = asyncio.run(ScenarioRunner(stub, probe_config).run(sequential("s", "login only", get_scenario("complete").steps[0])))
    payload = report.to_dict()
    assert payload["scenario"] == "s"
    assert payload["summary"] == {"total": 1, "succeeded": 1, "failed": 0, "skipped": 0}
    assert payload["steps"][0]["status"] == "SUCCEEDED"
    assert payload["steps"][0]["result"]["status_code"] == 200
