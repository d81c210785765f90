import asyncio
import logging

import pytest
from lootjson._core.logging import (
    DEFAULT_LOG_LEVEL,
    _log_stats,
    clear_logging_config,
    configure_logging,
    get_logger,
    is_logging_configured,
    log_summary,
)


@pytest.fixture(autouse=True)
def reset_logging_state(monkeypatch):
    """Resets the global state of the logging module before each test."""
    _log_stats.clear()
    monkeypatch.setattr('lootjson._core.logging._logging_configured', False)
    yield
    _log_stats.clear()
    monkeypatch.setattr('lootjson._core.logging._logging_configured', False)
    logging.getLogger().handlers.clear()


def test_basic_logging_levels_and_stats(capsys):
    """
    Tests that basic logging calls are emitted and that stats are tracked correctly.
    """
    logger = get_logger('test_logger')
    configure_logging(level='DEBUG', use_rich=False, force=True)

    logger.debug('debug message')
    logger.info('info message')
    logger.warning('warn message')
    logger.error('error message')
    logger.critical('critical message')

    captured = capsys.readouterr().err
    assert 'debug message' in captured
    assert 'info message' in captured
    assert 'warn message' in captured
    assert 'error message' in captured
    assert 'critical message' in captured

    stats = _log_stats.get('test_logger', {})
    assert stats.get('DEBUG') == 1
    assert stats.get('INFO') == 1
    assert stats.get('WARNING') == 1
    assert stats.get('ERROR') == 1
    assert stats.get('CRITICAL') == 1


def test_log_json_pretty_prints_and_logs(capsys):
    """
    Tests that log_json correctly formats and outputs JSON data.
    """
    logger = get_logger('json_logger')
    configure_logging(level='INFO', use_rich=False, force=True)
    data = {'dialogue': 'Hello', 'scores': [1, 2, 3]}

    logger.log_json(data, title='Looted')
    captured = capsys.readouterr().err

    assert 'Looted' in captured
    assert '"dialogue": "Hello"' in captured
    assert '"scores":' in captured

    class BadObject:
        def __str__(self):
            raise TypeError('Cannot be serialized')

    logger.log_json({'bad': BadObject()})
    captured_err = capsys.readouterr().err
    assert 'Failed to serialize JSON data' in captured_err


def test_log_operation_context_manager_success(capsys):
    logger = get_logger('op_logger')
    configure_logging(level='INFO', use_rich=False, force=True)

    with logger.log_operation('repair_batch'):
        pass

    captured = capsys.readouterr().err
    assert '🔹 Starting | repair_batch' in captured
    assert '✅ Completed | repair_batch in' in captured
    assert '⚡ Performance | repair_batch | Duration:' in captured


def test_log_operation_context_manager_exception(capsys):
    logger = get_logger('op_logger_fail')
    configure_logging(level='INFO', use_rich=False, force=True)

    with pytest.raises(ValueError, match='fail!'):
        with logger.log_operation('failing_op'):
            raise ValueError('fail!')

    captured = capsys.readouterr().err
    assert '🔹 Starting | failing_op' in captured
    assert '❌ Failed   | failing_op after' in captured


def test_log_operation_below_level_is_silent(capsys):
    logger = get_logger('quiet_op_logger')
    configure_logging(level='INFO', use_rich=False, force=True)

    with logger.log_operation('quiet_op', level=logging.DEBUG) as timer:
        assert timer is not None

    assert 'quiet_op' not in capsys.readouterr().err


@pytest.mark.asyncio
async def test_async_log_operation_success(capsys):
    logger = get_logger('async_logger')
    configure_logging(level='INFO', use_rich=False, force=True)

    async with logger.async_log_operation('async_op'):
        await asyncio.sleep(0.01)

    captured = capsys.readouterr().err
    assert '🔹 Starting Async | async_op' in captured
    assert '✅ Completed Async | async_op in' in captured
    assert '⚡ Performance | async_op | Duration:' in captured


@pytest.mark.asyncio
async def test_async_log_operation_exception(capsys):
    logger = get_logger('async_logger_fail')
    configure_logging(level='INFO', use_rich=False, force=True)

    with pytest.raises(RuntimeError, match='fail async!'):
        async with logger.async_log_operation('fail_async_op'):
            raise RuntimeError('fail async!')

    captured = capsys.readouterr().err
    assert '🔹 Starting Async | fail_async_op' in captured
    assert '❌ Failed Async | fail_async_op after' in captured


def test_configure_logging_force_reconfigures():
    """
    Tests that `force=True` allows re-configuration.
    """
    configure_logging(level=DEFAULT_LOG_LEVEL, use_rich=False)
    assert logging.getLogger().level == logging.getLevelName(DEFAULT_LOG_LEVEL)

    configure_logging(level='DEBUG', force=True)
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_without_force_is_noop():
    configure_logging(level='WARNING', use_rich=False)
    configure_logging(level='DEBUG', use_rich=False)
    assert logging.getLogger().level == logging.WARNING


def test_clear_logging_config_resets_state():
    configure_logging(level='INFO', use_rich=False, force=True)
    get_logger('cleared_logger').info('counted')
    assert is_logging_configured()

    clear_logging_config()

    assert not is_logging_configured()
    assert _log_stats == {}
    assert logging.getLogger().handlers == []


def test_file_handler_writes_log_file(tmp_path):
    log_file = tmp_path / 'logs' / 'lootjson.log'
    configure_logging(level='INFO', use_rich=False, file_path=str(log_file), force=True)

    get_logger('file_logger').info('written to disk')
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert 'written to disk' in log_file.read_text()


def test_log_table_prints_table(capsys):
    """
    Tests that log_table() renders a table through rich.
    """
    logger = get_logger('table_logger')
    configure_logging(level='INFO', use_rich=False, force=True)

    data = [{'field': 'dialogue', 'chars': 10}, {'field': 'emotion', 'chars': 15}]
    logger.log_table(data, title='Fields')

    captured = capsys.readouterr().err
    assert 'Fields' in captured
    assert 'dialogue' in captured
    assert '10' in captured
    assert 'emotion' in captured
    assert '15' in captured


def test_log_table_empty_data_logs_message(capsys):
    logger = get_logger('table_logger_empty')
    configure_logging(level='INFO', use_rich=False, force=True)

    logger.log_table([], title='Empty Table')
    captured = capsys.readouterr().err
    assert 'Empty Table: No data to display' in captured


def test_log_performance_message_format(capsys):
    logger = get_logger('perf_logger')
    configure_logging(level='INFO', use_rich=False, force=True)

    logger.log_performance('stream', 1.2345, chunks=100, fields=2)
    captured = capsys.readouterr().err

    assert 'stream' in captured
    assert 'Duration: 1.2345s' in captured
    assert 'chunks=100' in captured
    assert 'fields=2' in captured


def test_log_exception_logs_error(capsys):
    """
    Tests that log_exception() correctly logs an exception with a traceback.
    """
    logger = get_logger('exc_logger')
    configure_logging(level='ERROR', use_rich=False, force=True)

    try:
        raise ValueError('test error')
    except ValueError as e:
        logger.log_exception(e, 'Custom error message')

    captured = capsys.readouterr().err
    assert 'Custom error message' in captured
    assert 'ValueError: test error' in captured
    assert 'Traceback (most recent call last):' in captured


def test_log_summary_reports_counts(capsys):
    configure_logging(level='INFO', use_rich=False, force=True)
    get_logger('summary_source').info('one')
    get_logger('summary_source').warning('two')

    log_summary()

    captured = capsys.readouterr().err
    assert '--- Logging Summary ---' in captured
    assert 'summary_source' in captured
    assert 'Grand Total Messages:' in captured
