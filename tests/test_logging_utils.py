from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

from lookout_ssf import logging_utils
from lookout_ssf.config import LoggingSettings


@patch("lookout_ssf.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(mock_basic_config: MagicMock) -> None:
    logging_utils.configure_logging(LoggingSettings(level="debug"))

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.DEBUG
    assert len(kwargs["handlers"]) == 1


@patch("lookout_ssf.logging_utils.logging.basicConfig")
def test_configure_logging_with_file(mock_basic_config: MagicMock, tmp_path) -> None:
    logging_utils.configure_logging(LoggingSettings(file=str(tmp_path / "logs" / "relay.log")))

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 2
    assert (tmp_path / "logs").is_dir()
    for handler in handlers:
        handler.close()


@patch("lookout_ssf.logging_utils.logging.basicConfig")
@patch("lookout_ssf.logging_utils.logging.FileHandler", side_effect=OSError("permission denied"))
@patch("lookout_ssf.logging_utils._logger")
def test_configure_logging_file_handler_error(
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    _mock_basic_config: MagicMock,
) -> None:
    logging_utils.configure_logging(LoggingSettings(file="./logs/app.log"))

    mock_logger.warning.assert_called_once()


@patch("lookout_ssf.logging_utils.logging.basicConfig")
def test_unknown_level_falls_back_to_info(mock_basic_config: MagicMock) -> None:
    logging_utils.configure_logging(LoggingSettings(level="chatty"))
    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO
