from __future__ import annotations

import pytest

from helpers import FakeTransport, TimeController


@pytest.fixture()
def clock() -> TimeController:
    return TimeController()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()
