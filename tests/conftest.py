"""Shared test fixtures for reqpipe.

Provides isolated config environments, output state management, a
controllable clock, and scripted requestors that stand in for the network.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pytest

from reqpipe.exceptions import ConnectionError_, error_for_response
from reqpipe.models import RequestConfig, Response
from reqpipe.output import OutputFormat, OutputManager, reset_output, set_output
from reqpipe.requestor import Requestor


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced time source for store expiry tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Outcome = Union[int, Exception, Callable[[RequestConfig], Any]]


class ScriptedRequestor(Requestor):
    """Transport double that records calls and replays scripted outcomes.

    Each outcome is consumed in order; the last one repeats once the
    script runs out. An ``int`` is a status code (400 and above raise the
    matching typed error), an exception is raised as-is, and a callable
    receives the config and returns the response body.

    Args:
        outcomes: Scripted outcomes, default a single 200.
        latency: Seconds each call waits before settling.
    """

    def __init__(self, *outcomes: Outcome, latency: float = 0.0) -> None:
        super().__init__()
        self._outcomes = list(outcomes) or [200]
        self.latency = latency
        self.calls: list[RequestConfig] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def request(self, config: RequestConfig) -> Response:
        index = min(len(self.calls), len(self._outcomes) - 1)
        outcome = self._outcomes[index]
        self.calls.append(config)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            else:
                await asyncio.sleep(0)
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                return make_response(config, data=outcome(config))
            response = make_response(config, status=outcome, data={"call": len(self.calls)})
            if outcome >= 400:
                raise error_for_response(response)
            return response
        finally:
            self.in_flight -= 1


def make_response(
    config: Optional[RequestConfig] = None,
    status: int = 200,
    data: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> Response:
    """Build a :class:`Response` for *config* (a GET of ``/test`` by default)."""
    return Response(
        data=data,
        status=status,
        status_text="OK" if status < 400 else "Error",
        headers=headers or {},
        config=config or RequestConfig(url="/test"),
    )


def network_error(message: str = "connection refused") -> ConnectionError_:
    """A failure with no response, as raised for refused connections."""
    return ConnectionError_(message)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_sleeps() -> tuple[list[float], Callable[[float], Any]]:
    """A no-wait replacement for ``asyncio.sleep`` that records its delays."""
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    return delays, _sleep


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all REQPIPE_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("reqpipe.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["REQPIPE_BASE_URL", "REQPIPE_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
