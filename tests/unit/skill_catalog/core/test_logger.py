from __future__ import annotations

import io
import json
import logging

import pytest

from skill_catalog.core.logging.logger import configure_logging, get_logger


def _records(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    configure_logging("WARNING", stream=io.StringIO())


def test_data_is_rendered_as_structured_field() -> None:
    stream = io.StringIO()
    configure_logging("DEBUG", "json", stream=stream)

    get_logger("skill_catalog.test").info("Scanned", data={"skills": 2, "source": "octo/widgets"})

    [record] = _records(stream)
    assert record["event"] == "Scanned"
    assert record["level"] == "info"
    assert record["logger"] == "skill_catalog.test"
    assert record["data"] == {"skills": 2, "source": "octo/widgets"}
    assert "timestamp" in record


def test_message_without_data_has_no_data_field() -> None:
    stream = io.StringIO()
    configure_logging("DEBUG", "json", stream=stream)

    get_logger("skill_catalog.test").warning("plain")

    [record] = _records(stream)
    assert record["event"] == "plain"
    assert "data" not in record


def test_level_filters_messages() -> None:
    stream = io.StringIO()
    configure_logging("WARNING", stream=stream)

    get_logger("skill_catalog.test").info("hidden")
    get_logger("skill_catalog.test").warning("shown")

    output = stream.getvalue()
    assert "hidden" not in output
    assert "shown" in output


def test_invalid_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging("LOUD")


def test_reconfiguring_replaces_handler() -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging("INFO", "json", stream=first)
    configure_logging("INFO", "json", stream=second)

    get_logger("skill_catalog.test").info("once")

    assert len(logging.getLogger("skill_catalog").handlers) == 1
    assert first.getvalue() == ""
    assert [record["event"] for record in _records(second)] == ["once"]
