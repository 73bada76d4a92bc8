# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Scenario orchestration: ordered probe steps with prerequisites."""

from .models import ScenarioReport, StepOutcome, StepStateError, StepStatus
from .runner import ScenarioRunner
from .scenarios import DEFAULT_SCENARIO, SCENARIOS, get_scenario
from .settle import SettleReport, SettleWait
from .steps import ProbeStep, Scenario, StepContext

__all__ = [
    "DEFAULT_SCENARIO",
    "SCENARIOS",
    "ProbeStep",
    "Scenario",
    "ScenarioReport",
    "ScenarioRunner",
    "SettleReport",
    "SettleWait",
    "StepContext",
    "StepOutcome",
    "StepStateError",
    "StepStatus",
    "get_scenario",
]
