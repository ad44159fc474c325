import json
import logging

from auto_lp_builder.config import MAX_REPAIR_ATTEMPTS, PipelineSettings
from auto_lp_builder.logging_config import RunIdFilter, StructuredFormatter, run_id_var


def test_settings_from_env_caps_repair_attempts(monkeypatch):
    monkeypatch.setenv("LP_MAX_REPAIR_ATTEMPTS", "9")
    monkeypatch.setenv("LP_REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("LP_MAX_CONCURRENCY", "4")
    monkeypatch.setenv("PROJECT_ID", "demo-project")

    settings = PipelineSettings.from_env()

    assert settings.max_repair_attempts == MAX_REPAIR_ATTEMPTS
    assert settings.request_timeout == 12.5
    assert settings.max_concurrency == 4
    assert settings.project_id == "demo-project"


def test_structured_formatter_emits_extra_fields_and_run_id():
    record = logging.LogRecord("auto_lp_builder.pipeline", logging.INFO, __file__, 10, "Built page", (), None)
    record.variant = 2
    token = run_id_var.set("run-123")
    try:
        RunIdFilter().filter(record)
    finally:
        run_id_var.reset(token)

    payload = json.loads(StructuredFormatter().format(record))

    assert payload["message"] == "Built page"
    assert payload["severity"] == "INFO"
    assert payload["variant"] == 2
    assert payload["run_id"] == "run-123"
