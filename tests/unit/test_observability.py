"""Unit tests for structured logging, metrics and process wiring"""

import io
import json
import logging
from unittest.mock import patch

import pytest

from finpulse import dependencies
from finpulse.config import settings
from finpulse.infrastructure.observability.logging import (
    CustomJsonFormatter,
    log_aggregation,
    log_rate_fallback,
    setup_logging,
)
from finpulse.infrastructure.observability.metrics import record_rate_lookup, render_metrics


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_adds_service_metadata():
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger = logging.getLogger("finpulse.test.json")
    logger.addHandler(handler)
    logger.propagate = False

    try:
        logger.warning("Exchange rate degraded", extra={"source": "fallback"})
    finally:
        logger.removeHandler(handler)

    record = json.loads(stream.getvalue())
    assert record["message"] == "Exchange rate degraded"
    assert record["level"] == "WARNING"
    assert record["service"] == "finpulse"
    assert record["source"] == "fallback"
    assert record["timestamp"]


def test_setup_logging_replaces_root_handlers(restore_root_logger):
    setup_logging("DEBUG")

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, CustomJsonFormatter)


def test_log_aggregation_fields(caplog):
    with caplog.at_level(logging.INFO):
        log_aggregation("user_1", "income", "USD", entity_count=3, degraded_count=1, duration_ms=4.2)

    record = caplog.records[-1]
    assert record.message == "Aggregation completed"
    assert record.owner_id == "user_1"
    assert record.kind == "income"
    assert record.degraded_count == 1


def test_log_rate_fallback_is_warning(caplog):
    log_rate_fallback("EUR", "INR", "fallback", "provider timeout")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.step == "rate_fallback"
    assert record.to_currency == "INR"


def test_render_metrics():
    record_rate_lookup("cache")

    payload, content_type = render_metrics()

    assert b'finpulse_rate_lookups_total{source="cache"}' in payload
    assert content_type.startswith("text/plain")


def test_bootstrap_configures_logging_and_schema():
    with patch("finpulse.dependencies.setup_logging") as mock_logging, patch("finpulse.dependencies.Base") as mock_base:
        dependencies.bootstrap()

    mock_logging.assert_called_once_with(settings.log_level)
    mock_base.metadata.create_all.assert_called_once_with(bind=dependencies.engine)


def test_rate_provider_only_with_real_key(monkeypatch):
    monkeypatch.setattr(settings, "rate_api_key", "demo")
    assert dependencies.get_rate_provider() is None

    monkeypatch.setattr(settings, "rate_api_key", "live-key")
    provider = dependencies.get_rate_provider()
    assert provider is not None
    assert provider.api_key == "live-key"


def test_converter_is_shared():
    assert dependencies.get_converter() is dependencies.get_converter()


def test_quote_provider_uses_configured_key(monkeypatch):
    monkeypatch.setattr(settings, "rate_api_key", "live-key")
    assert dependencies.get_quote_provider().api_key == "live-key"
