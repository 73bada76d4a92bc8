# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from authprobe.config import Credentials, HttpSettings, ProbeConfig, Topology
from authprobe.envfile import EnvConfig


@pytest.fixture
def probe_config() -> ProbeConfig:
    return ProbeConfig(
        env=EnvConfig(values={"ANON_KEY": "abc123"}),
        http=HttpSettings(timeout=1.0, health_timeout=0.5, settle_max_wait=0.0),
        topology=Topology(),
        credentials=Credentials(),
    )
