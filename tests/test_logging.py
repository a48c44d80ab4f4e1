"""
Unit tests for logging configuration.
"""
import json
import logging
from typing import Any, Iterator

import pytest
import structlog

from marketplace.config import Settings, get_settings
from marketplace.monitoring.logging import app_context_processor, setup_logging


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo global logging configuration after the test."""
    yield
    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    get_settings.cache_clear()


def rendered_events(output: str) -> list[dict[str, Any]]:
    events = []
    for line in output.splitlines():
        record = json.loads(line)
        events.append(json.loads(record["message"]))
    return events


class TestSetupLogging:
    """Test suite for setup_logging."""

    @pytest.mark.unit
    def test_processor_uses_given_settings(self, test_settings: Settings) -> None:
        processor = app_context_processor(test_settings)

        event = processor(None, "info", {"event": "ping"})

        assert event == {"event": "ping", "app_name": "marketplace-test", "app_env": "test"}

    @pytest.mark.unit
    def test_events_carry_injected_app_env_without_environment(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
        restore_logging: None,
    ) -> None:
        monkeypatch.delenv("MONGO_URI", raising=False)
        get_settings.cache_clear()
        settings = Settings(
            _env_file=None,
            mongo_uri="mongodb://h:1",
            app_name="marketplace-staging",
            app_env="staging",
            log_level="INFO",
        )

        setup_logging(settings)
        structlog.get_logger("tests.logging").info("order_placed", order_id="o1")

        events = rendered_events(capsys.readouterr().out)
        [placed] = [e for e in events if e["event"] == "order_placed"]
        assert placed["app_env"] == "staging"
        assert placed["app_name"] == "marketplace-staging"
        assert placed["order_id"] == "o1"
        assert placed["level"] == "info"
