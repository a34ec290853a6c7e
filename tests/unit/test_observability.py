"""Unit tests for structured log helpers"""

import logging
from setaside.infrastructure.observability.logging import log_forecast, log_scenario_commit


def test_log_scenario_commit_fields(caplog):
    """Test commit counts land on the record without clashing with LogRecord attributes"""
    with caplog.at_level(logging.INFO):
        log_scenario_commit("req-1", "user-1", 1, 2, 3)

    record = caplog.records[-1]
    assert record.getMessage() == "Scenario committed"
    assert (record.paused_count, record.updated_count, record.created_count) == (1, 2, 3)
    assert record.step == "scenario_commit"


def test_log_forecast_fields(caplog):
    with caplog.at_level(logging.INFO):
        log_forecast("req-1", "user-1", "live", 2, 1, 30000, False, 4.2)

    record = caplog.records[-1]
    assert record.mode == "live"
    assert record.total_recommended_cents == 30000
    assert record.over_cap is False
