# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Step status, per-step outcomes and the scenario report."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from ..errors import AuthProbeError
from ..http.models import ProbeResult


class StepStatus(str, Enum):
    NOT_RUN = "NOT_RUN"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({StepStatus.SUCCEEDED, StepStatus.FAILED, StepStatus.SKIPPED})

_ALLOWED_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.NOT_RUN: frozenset({StepStatus.RUNNING, StepStatus.SKIPPED}),
    StepStatus.RUNNING: frozenset({StepStatus.SUCCEEDED, StepStatus.FAILED}),
    StepStatus.SUCCEEDED: frozenset(),
    StepStatus.FAILED: frozenset(),
    StepStatus.SKIPPED: frozenset(),
}


class StepStateError(AuthProbeError):
    """Raised on a step transition the state machine does not allow."""


def check_transition(step: str, current: StepStatus, new: StepStatus) -> None:
    if new not in _ALLOWED_TRANSITIONS[current]:
        raise StepStateError(f"{step}: cannot move from {current.value} to {new.value}")


@dataclass(frozen=True)
class StepOutcome:
    """Terminal record for one step."""

    name: str
    title: str
    status: StepStatus
    result: ProbeResult | None = None
    reason: str = ""
    details: Mapping[str, Any] = field(default_factory=dict)
    values: Mapping[str, str] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "status": self.status.value,
            "reason": self.reason,
            "details": dict(self.details),
            "result": self.result.to_dict() if self.result is not None else None,
        }


@dataclass(frozen=True)
class ScenarioReport:
    """Ordered outcomes for one scenario run."""

    scenario: str
    outcomes: tuple[StepOutcome, ...] = ()
    description: str = ""

    def outcome(self, name: str) -> StepOutcome:
        for item in self.outcomes:
            if item.name == name:
                return item
        raise KeyError(name)

    def _count(self, status: StepStatus) -> int:
        return sum(1 for item in self.outcomes if item.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(StepStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(StepStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(StepStatus.SKIPPED)

    @property
    def all_succeeded(self) -> bool:
        return bool(self.outcomes) and self.succeeded == len(self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.scenario,
            "description": self.description,
            "summary": {
                "total": len(self.outcomes),
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "steps": [item.to_dict() for item in self.outcomes],
        }


__all__ = [
    "TERMINAL_STATUSES",
    "ScenarioReport",
    "StepOutcome",
    "StepStateError",
    "StepStatus",
    "check_transition",
]
