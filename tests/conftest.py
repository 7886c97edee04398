# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from fakes import FakeClock, RecordingRegistry


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_registry(clock: FakeClock) -> RecordingRegistry:
    return RecordingRegistry(clock)
