import io
import logging

import pytest

from ledger_analytics import config, logging_setup


@pytest.fixture
def restore_logging():
    pkg_logger = logging.getLogger('ledger_analytics')
    handlers = list(pkg_logger.handlers)
    level = pkg_logger.level
    propagate = pkg_logger.propagate
    yield
    pkg_logger.handlers = handlers
    pkg_logger.setLevel(level)
    pkg_logger.propagate = propagate
    logging_setup._CONFIGURED = False


def test_get_timezone_defaults_and_validates():
    assert config.get_timezone('America/New_York') == 'America/New_York'
    assert config.get_timezone() == config.TIMEZONE
    with pytest.raises(ValueError):
        config.get_timezone('Mars/Olympus_Mons')


def test_get_db_path_is_string():
    assert config.get_db_path() == str(config.DB_PATH)


def test_ensure_data_directories(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.setattr(config, 'EXPORTS_DIR', tmp_path / 'data' / 'exports')
    config.ensure_data_directories()
    assert (tmp_path / 'data' / 'exports').is_dir()


@pytest.mark.parametrize(
    'value, expected',
    [('debug', logging.DEBUG), ('WARNING', logging.WARNING), ('15', 15), (logging.ERROR, logging.ERROR), ('nope', logging.INFO)],
)
def test_parse_level(value, expected):
    assert logging_setup._parse_level(value) == expected


def test_configure_logging_writes_to_stream(restore_logging):
    stream = io.StringIO()
    logging_setup.configure_logging('INFO', fmt='%(levelname)s %(message)s', stream=stream)
    logging_setup.configure_logging('DEBUG', stream=io.StringIO())
    logger = logging_setup.get_logger('ledger_analytics.test')
    logger.info('hello ledger')
    logger.debug('hidden')
    assert stream.getvalue() == 'INFO hello ledger\n'


def test_get_logger_is_silent_by_default(restore_logging):
    logger = logging_setup.get_logger('ledger_analytics.quiet')
    assert logger.name == 'ledger_analytics.quiet'
    assert any(isinstance(h, logging.NullHandler) for h in logging.getLogger('ledger_analytics').handlers)


def test_default_level_comes_from_config(monkeypatch):
    monkeypatch.setattr(logging_setup, 'LOG_LEVEL', 'warning')
    assert logging_setup._parse_level(None) == logging.WARNING
