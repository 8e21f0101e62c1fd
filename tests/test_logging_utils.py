import json
import logging

from utils.logging_utils import JsonFormatter, build_logging_config


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("middleware.logging", logging.INFO, __file__, 12, "incoming %s", ("message",), None)
    record.chat_id = -100
    record.chat_type = "supergroup"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "incoming message"
    assert payload["level"] == "INFO"
    assert payload["chat_id"] == -100
    assert payload["chat_type"] == "supergroup"
    assert "args" not in payload


def test_build_logging_config_names_files_per_run(tmp_path):
    config = build_logging_config(tmp_path, level="WARNING", timestamp="20240101-000000")

    handlers = config["handlers"]
    assert handlers["console"]["level"] == "WARNING"
    assert handlers["file"]["filename"] == str(tmp_path / "groupguard-20240101-000000.log")
    assert handlers["json"]["filename"] == str(tmp_path / "groupguard-20240101-000000.jsonl")
    assert handlers["latest"]["filename"] == str(tmp_path / "latest.log")
    assert config["loggers"]["aiogram.event"]["level"] == "WARNING"
