"""
Tests for the Typer command-line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from slotbook import __version__
from slotbook.cli.app import app
from slotbook.config import ACCESS_TOKEN_ENV_VAR

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("timezone: America/Phoenix\nmin_booking_lead_hours: 1\n", encoding="utf-8")
    return str(path)


def test_availability_with_mock_calendar(config_file):
    result = runner.invoke(app, ["availability", "--year", "2024", "--month", "3", "--mock", "--config", config_file])

    assert result.exit_code == 0
    assert "MOCK MODE" in result.output
    assert "slot(s)" in result.output


def test_availability_as_json(config_file):
    result = runner.invoke(app, [
        "availability", "--year", "2024", "--month", "3", "--mock", "--json", "--config", config_file,
    ])

    assert result.exit_code == 0
    payload = json.loads(result.output[result.output.index("{"):result.output.rindex("}") + 1])
    assert payload["kind"] == "blocked"
    assert payload["timezone"] == "America/Phoenix"
    assert "2024-03-11_9_0" in payload["keys"]
    assert {"date": "2024-03-11", "hour": 9, "minute": 0} in payload["slots"]
    assert payload["keys"][0] == "2024-03-11_8_30"
    assert len(payload["keys"]) == len(payload["slots"])


def test_availability_rejects_invalid_month(config_file):
    result = runner.invoke(app, ["availability", "--year", "2024", "--month", "13", "--mock", "--config", config_file])

    assert result.exit_code == 1
    assert "Month must be between 1 and 12" in result.output


def test_book_with_mock_calendar(config_file):
    result = runner.invoke(app, [
        "book",
        "--name", "Ada Lovelace",
        "--email", "ada@example.com",
        "--phone", "555-0100",
        "--at", "2031-03-11T17:00:00Z",
        "--mock",
        "--config", config_file,
    ])

    assert result.exit_code == 0
    assert "Appointment booked" in result.output


def test_book_with_qualification_answers(config_file):
    result = runner.invoke(app, [
        "book",
        "--name", "Ada Lovelace",
        "--email", "ada@example.com",
        "--phone", "555-0100",
        "--at", "2031-03-12T17:00:00Z",
        "--answer", "role=brand-owner",
        "--answer", "current_revenue=51-100k",
        "--mock",
        "--config", config_file,
    ])

    assert result.exit_code == 0
    assert "Appointment booked" in result.output


def test_book_rejects_malformed_answer(config_file):
    result = runner.invoke(app, [
        "book",
        "--name", "Ada Lovelace",
        "--email", "ada@example.com",
        "--phone", "555-0100",
        "--at", "2031-03-12T17:00:00Z",
        "--answer", "no-equals-sign",
        "--mock",
        "--config", config_file,
    ])

    assert result.exit_code == 1
    assert "key=value" in result.output


def test_book_in_the_past_is_refused(config_file):
    result = runner.invoke(app, [
        "book",
        "--name", "Ada Lovelace",
        "--email", "ada@example.com",
        "--phone", "555-0100",
        "--at", "2024-03-11T17:00:00Z",
        "--mock",
        "--config", config_file,
    ])

    assert result.exit_code == 1
    assert "Not booked" in result.output


def test_test_connection_requires_token(config_file, monkeypatch):
    monkeypatch.delenv(ACCESS_TOKEN_ENV_VAR, raising=False)

    result = runner.invoke(app, ["test-connection", "--config", config_file])

    assert result.exit_code == 1
    assert "No Google access token" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
