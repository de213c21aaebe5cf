"""
Brief: Global pytest configuration: src path setup, per-test timeout and
shared fakes for the resolution tests.

Inputs:
  - None

Outputs:
  - None
"""

import os
import signal
import sys
from typing import List

import pytest

# Ensure 'src' is on sys.path so 'dnscache' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


# Install handler if supported on this platform
if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        # Fallback: no-op on platforms without SIGALRM
        yield


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Records send() calls; tests complete them via the stored callback."""

    def __init__(self):
        self.calls: List[dict] = []

    def send(self, host, port, payload, *, timeout_ms=1000, callback):
        self.calls.append(
            {
                "host": host,
                "port": port,
                "payload": payload,
                "timeout_ms": timeout_ms,
                "callback": callback,
            }
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def resolv_conf(tmp_path):
    """
    Brief: Write a resolv.conf with a single nameserver.

    Outputs:
      - str: path to the file
    """
    path = tmp_path / "resolv.conf"
    path.write_text("search example.internal\nnameserver 192.0.2.53\n")
    return str(path)
