from __future__ import annotations

import pytest

from dbaas_backup.core.config import get_settings
from dbaas_backup.core.context import RequestContext
from dbaas_backup.services.telemetry import reset_telemetry
from dbaas_backup.tests.utils.daemon import FakeDaemon


@pytest.fixture(autouse=True)
def isolate_module_state() -> None:
    # Settings are cached and telemetry buffers are module-level; reset both around each test.
    get_settings.cache_clear()
    reset_telemetry()
    yield
    get_settings.cache_clear()
    reset_telemetry()


@pytest.fixture
def daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.new("req-test", timeout_s=5.0)
