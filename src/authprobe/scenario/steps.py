# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Step and scenario definitions."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..config import ProbeConfig
from ..http.models import ProbeRequest, ProbeResult
from .settle import SettleWait

Check = Callable[[ProbeResult], bool]
Extract = Callable[[ProbeResult], Mapping[str, str]]


def status_is(*codes: int) -> Check:
    def check(result: ProbeResult) -> bool:
        return result.status_code in codes

    return check


@dataclass(frozen=True)
class StepContext:
    """Inputs a step builds its request from: the run config plus values published by earlier steps."""

    config: ProbeConfig
    values: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def api_key(self) -> str | None:
        return self.config.api_key

    @property
    def access_token(self) -> str | None:
        return self.values.get("access_token")


Describe = Callable[[ProbeResult, StepContext], Mapping[str, Any]]


@dataclass(frozen=True)
class ProbeStep:
    """
    One named probe plus the rules for interpreting its result.

    ``requires`` lists steps that must all have succeeded; ``requires_any`` lists steps of which
    at least one must have succeeded. Otherwise the step is skipped without a request being made.
    """

    name: str
    title: str
    build: Callable[[StepContext], ProbeRequest]
    check: Check = status_is(200)
    requires: tuple[str, ...] = ()
    requires_any: tuple[str, ...] = ()
    extract: Extract | None = None
    describe: Describe | None = None
    settle: SettleWait | None = None


@dataclass(frozen=True)
class Scenario:
    """Ordered stages of steps; the steps inside one stage are dispatched concurrently."""

    name: str
    description: str
    stages: tuple[tuple[ProbeStep, ...], ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for stage in self.stages:
            stage_names = {step.name for step in stage}
            for step in stage:
                for dependency in (*step.requires, *step.requires_any):
                    if dependency not in seen:
                        raise ValueError(f"{self.name}: step {step.name!r} depends on {dependency!r}, which does not run in an earlier stage")
            if stage_names & seen or len(stage_names) != len(stage):
                raise ValueError(f"{self.name}: step names must be unique")
            seen |= stage_names

    @property
    def steps(self) -> tuple[ProbeStep, ...]:
        return tuple(step for stage in self.stages for step in stage)


def sequential(name: str, description: str, *steps: ProbeStep) -> Scenario:
    return Scenario(name=name, description=description, stages=tuple((step,) for step in steps))


__all__ = ["Check", "ProbeStep", "Scenario", "StepContext", "sequential", "status_is"]
