from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from cloudgov_dashboard import logging_utils


def _settings(log_file: str | None, level: str = "INFO") -> SimpleNamespace:
    return SimpleNamespace(
        logging=SimpleNamespace(level=level, file=log_file),
    )


@patch("cloudgov_dashboard.logging_utils.load_settings")
@patch("cloudgov_dashboard.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None)

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.INFO
    assert len(kwargs["handlers"]) == 1


@patch("cloudgov_dashboard.logging_utils.load_settings")
@patch("cloudgov_dashboard.logging_utils.logging.basicConfig")
def test_configure_logging_with_file(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    log_file = tmp_path / "logs" / "api.log"
    mock_load_settings.return_value = _settings(str(log_file), level="debug")

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["level"] == logging.DEBUG
    assert len(kwargs["handlers"]) == 2
    assert log_file.parent.is_dir()
    for handler in kwargs["handlers"]:
        handler.close()


@patch("cloudgov_dashboard.logging_utils.load_settings")
@patch("cloudgov_dashboard.logging_utils.logging.basicConfig")
def test_unknown_level_falls_back_to_info(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="chatty")

    logging_utils.configure_logging()

    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


@patch("cloudgov_dashboard.logging_utils.load_settings")
@patch(
    "cloudgov_dashboard.logging_utils.logging.FileHandler",
    side_effect=OSError("permission denied"),
)
@patch("cloudgov_dashboard.logging_utils._logger")
def test_configure_logging_file_handler_error(
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "app.log"))

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()


def test_get_logger_auto_configures(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_logging_configured", False)

    calls = {"count": 0}

    def fake_configure() -> None:
        calls["count"] += 1
        monkeypatch.setattr(logging_utils, "_logging_configured", True)

    monkeypatch.setattr(logging_utils, "configure_logging", fake_configure)

    logger = logging_utils.get_logger("test.logger")
    assert logger.name == "test.logger"
    logging_utils.get_logger("test.other")
    assert calls["count"] == 1


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.INFO, logging.WARNING),
        (logging.ERROR, logging.ERROR),
        (logging.DEBUG, logging.DEBUG),
    ],
)
def test_aws_sdk_loggers_follow_api_level(level: int, expected: int) -> None:
    loggers = [logging.getLogger(name) for name in ("boto3", "botocore", "urllib3")]
    previous = [logger.level for logger in loggers]
    try:
        logging_utils.quiet_aws_sdk_loggers(level)
        assert [logger.level for logger in loggers] == [expected] * len(loggers)
    finally:
        for logger, saved in zip(loggers, previous):
            logger.setLevel(saved)


@patch("cloudgov_dashboard.logging_utils.load_settings")
@patch("cloudgov_dashboard.logging_utils.logging.basicConfig")
@patch("cloudgov_dashboard.logging_utils.quiet_aws_sdk_loggers")
def test_configure_logging_quiets_aws_sdk(
    mock_quiet: MagicMock,
    _mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="warning")

    logging_utils.configure_logging()

    mock_quiet.assert_called_once_with(logging.WARNING)
