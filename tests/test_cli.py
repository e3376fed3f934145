import json
import logging

import pytest

from hoarder_sender import cli
from hoarder_sender.config import AppConfig
from hoarder_sender.runner import DispatchResult


def _config(method="rss"):
    config = AppConfig(notification_method=method)
    config.hoarder.server_url = "http://hoarder.local"
    config.hoarder.api_key = "super-secret"
    return config


@pytest.fixture
def restore_root_handlers():
    original_handlers = list(logging.getLogger().handlers)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    yield
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


def test_configure_logging_defaults_to_console_only(restore_root_handlers):
    cli.configure_logging("INFO")

    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
    assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_with_log_file_creates_file_handler(restore_root_handlers, tmp_path):
    log_path = tmp_path / "nested" / "custom.log"
    cli.configure_logging("INFO", str(log_path))

    assert log_path.exists()
    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_rejects_unknown_level(restore_root_handlers):
    with pytest.raises(ValueError):
        cli.configure_logging("CHATTY")


def test_masked_config_hides_secrets():
    config = _config()
    config.email.api_key = "re_123"
    masked = cli.masked_config(config)

    assert masked["hoarder"]["api_key"] == "***MASKED***"
    assert masked["email"]["api_key"] == "***MASKED***"
    assert masked["telegram"]["bot_token"] is None
    assert masked["hoarder"]["server_url"] == "http://hoarder.local"


def test_build_components_rejects_invalid_frequency():
    config = _config()
    config.schedule.frequency = "hourly"
    with pytest.raises(ValueError, match="Invalid notification frequency"):
        cli.build_components(config)


def test_build_components_wires_feed_channel():
    config = _config()
    components = cli.build_components(config)

    assert components.dispatcher.channel.cache is components.feed_cache
    assert components.scheduler.job == components.dispatcher.run


def test_main_send_now_prints_result(monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "load_config", lambda path, env_file=None: _config())

    class FakeDispatcher:
        def trigger_now(self):
            return DispatchResult(status="sent", bookmarks=["a", "b"])

    def fake_build(config):
        return cli.Components(config, None, FakeDispatcher(), None)

    monkeypatch.setattr(cli, "build_components", fake_build)

    exit_code = cli.main(["--send-now"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {
        "status": "sent",
        "count": 2,
        "error": None,
    }


def test_main_send_now_failure_exit_code(monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "load_config", lambda path, env_file=None: _config())

    class FakeDispatcher:
        def trigger_now(self):
            return DispatchResult(status="failed", error="boom")

    monkeypatch.setattr(
        cli,
        "build_components",
        lambda config: cli.Components(config, None, FakeDispatcher(), None),
    )

    assert cli.main(["--send-now"]) == 1


def test_main_serves_with_cli_overrides(monkeypatch):
    captured = {}

    def fake_configure(level, log_file=None):
        captured["level"] = level
        captured["file"] = log_file

    def fake_run(app, host, port, log_config):
        captured["app"] = app
        captured["host"] = host
        captured["port"] = port

    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    monkeypatch.setattr(cli, "load_config", lambda path, env_file=None: _config())
    monkeypatch.setattr(cli.uvicorn, "run", fake_run)

    exit_code = cli.main(
        ["--log-level", "DEBUG", "--log-file", "cli.log", "--host", "127.0.0.1", "--port", "9999"]
    )

    assert exit_code == 0
    assert captured["level"] == "DEBUG"
    assert captured["file"] == "cli.log"
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9999
    assert captured["app"].title == "Hoarder Random Bookmark Sender"


def test_main_config_error_exits_via_parser(monkeypatch):
    def bad_config(path, env_file=None):
        raise ValueError("HOARDER_SERVER_URL and HOARDER_API_KEY are required.")

    monkeypatch.setattr(cli, "load_config", bad_config)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2


def test_main_missing_config_file_returns_one(monkeypatch):
    def missing(path, env_file=None):
        raise FileNotFoundError("Config file not found: nope.xml")

    monkeypatch.setattr(cli, "load_config", missing)

    assert cli.main(["--config", "nope.xml"]) == 1
