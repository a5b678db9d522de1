"""Tests for environment-driven settings."""

import pytest

from ordertrack.config import LogFormat, MissingMachinePolicy, Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.serial_min_width == 3
    assert settings.missing_machine_policy == MissingMachinePolicy.FAIL
    assert settings.log_format == LogFormat.CONSOLE
    assert settings.max_order_line_quantity == 1000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("http://a.test, http://b.test", ["http://a.test", "http://b.test"]),
        ('["http://a.test"]', ["http://a.test"]),
        ("", []),
    ],
)
def test_cors_origins(monkeypatch: pytest.MonkeyPatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("BACKEND_CORS_ORIGINS", raw)

    assert Settings(_env_file=None).backend_cors_origins == expected


def test_policy_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MISSING_MACHINE_POLICY", "skip")
    monkeypatch.setenv("SERIAL_ALLOCATION_MAX_ATTEMPTS", "2")

    settings = Settings(_env_file=None)

    assert settings.missing_machine_policy == MissingMachinePolicy.SKIP
    assert settings.serial_allocation_max_attempts == 2
