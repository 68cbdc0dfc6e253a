from __future__ import annotations

import math
import threading
import time
from typing import Callable, List, Union

import pytest

from pipelines.exploration.errors import OracleUnavailable
from services.streets.street_oracle import StreetOracle

# Approximate meters per degree of latitude
_M_PER_DEG = 111_320.0


def square_ring(lon: float, lat: float, side_m: float) -> List[List[float]]:
    """Closed square ring of roughly side_m meters centred on (lon, lat)"""
    half_lat = side_m / 2 / _M_PER_DEG
    half_lon = side_m / 2 / (_M_PER_DEG * math.cos(math.radians(lat)))
    return [
        [lon - half_lon, lat - half_lat],
        [lon + half_lon, lat - half_lat],
        [lon + half_lon, lat + half_lat],
        [lon - half_lon, lat + half_lat],
        [lon - half_lon, lat - half_lat],
    ]


def offset(lon: float, lat: float, east_m: float, north_m: float) -> List[float]:
    """Position east_m / north_m meters away from (lon, lat)"""
    return [
        lon + east_m / (_M_PER_DEG * math.cos(math.radians(lat))),
        lat + north_m / _M_PER_DEG,
    ]


class FakeStreetOracle(StreetOracle):
    """Scripted oracle that records calls and peak concurrency"""

    def __init__(
        self,
        answer: Union[bool, Callable] = False,
        fail: bool = False,
        fail_safe_has_streets: bool = False,
        delay: float = 0.0,
    ):
        super().__init__(fail_safe_has_streets)
        self.answer = answer
        self.fail = fail
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    def query_has_streets(self, bbox) -> bool:
        with self._lock:
            self.calls.append(bbox)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.fail:
                raise OracleUnavailable("simulated Overpass outage")
            return self.answer(bbox) if callable(self.answer) else self.answer
        finally:
            with self._lock:
                self.in_flight -= 1


class StatusRecorder:
    def __init__(self):
        self.messages = []

    def __call__(self, message: str, percent: float = 0) -> None:
        self.messages.append((message, percent))

    @property
    def texts(self) -> List[str]:
        return [message for message, _ in self.messages]


@pytest.fixture
def make_square():
    return square_ring


@pytest.fixture
def make_offset():
    return offset


@pytest.fixture
def fake_oracle_cls():
    return FakeStreetOracle


@pytest.fixture
def status_recorder():
    return StatusRecorder()
