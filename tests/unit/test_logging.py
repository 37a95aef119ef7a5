"""ロギング設定のテスト"""

import logging
from collections.abc import Iterator

import pytest

from delivery_distance.shared.logging import config


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """未設定の状態から始め、終了後にルートロガーを元に戻す"""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    monkeypatch.setattr(config, "_logger_configured", False)

    yield

    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def test_logs_go_to_stderr(fresh_logging, capsys) -> None:
    """標準出力はCLIのJSON専用"""
    config.setup_logging(level="INFO")

    config.get_logger("delivery_distance.test").info("Geocoding Praça da Sé")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Geocoding Praça da Sé" in captured.err


def test_quiet_loggers_are_raised_to_warning(fresh_logging) -> None:
    config.setup_logging(level="DEBUG")

    assert logging.getLogger().level == logging.DEBUG
    for name in config.QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_second_call_is_ignored(fresh_logging) -> None:
    config.setup_logging(level="WARNING")
    config.setup_logging(level="DEBUG")

    assert logging.getLogger().level == logging.WARNING


def test_unknown_level_defaults_to_info(fresh_logging) -> None:
    config.setup_logging(level="verbose")

    assert logging.getLogger().level == logging.INFO
