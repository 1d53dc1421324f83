#!/usr/bin/env python3
"""
Tests for the daily error log.
"""

import json
import logging

import pytest

from verse_canvas.error_log_manager import DailyErrorLogManager, MAX_ERRORS


def test_explicit_errors_are_counted():
    manager = DailyErrorLogManager()
    manager.log_error('verse_manager', 'not_found', 'Verse 99 not found', details={'verse': 99})
    manager.log_error('unknown_service', 'boom', 'Something else', exception=RuntimeError('boom'))

    summary = manager.get_daily_error_summary()
    assert summary['total_errors'] == 2
    assert summary['error_types'] == {'not_found': 1, 'boom': 1}
    assert set(summary['services']) == {'verse_manager', 'other'}
    assert manager.get_all_errors()[1]['exception']['type'] == 'RuntimeError'


def test_only_recent_errors_are_kept():
    manager = DailyErrorLogManager()
    for i in range(MAX_ERRORS + 5):
        manager.log_error('verse_cache', 'evicted', f"error {i}")

    errors = manager.get_all_errors()
    assert len(errors) == MAX_ERRORS
    assert errors[-1]['message'] == f"error {MAX_ERRORS + 4}"
    assert manager.get_daily_error_summary()['total_errors'] == MAX_ERRORS + 5


def test_handler_captures_error_records():
    manager = DailyErrorLogManager()
    handler = manager.install_handler()
    try:
        assert manager.install_handler() is handler
        logging.getLogger('verse_canvas.image_generator').error("Could not draw")
        logging.getLogger('verse_canvas.image_generator').warning("Just a warning")
    finally:
        logging.getLogger().removeHandler(handler)

    errors = manager.get_all_errors()
    assert len(errors) == 1
    assert errors[0]['service'] == 'image_generator'
    assert errors[0]['message'] == "Could not draw"


def test_errors_persist_to_file(tmp_path):
    log_file = tmp_path / 'errors.json'
    manager = DailyErrorLogManager(log_file=str(log_file))
    manager.log_error('layout_engine', 'invalid_input', 'empty text')

    assert json.loads(log_file.read_text())['error_count'] == 1

    reloaded = DailyErrorLogManager(log_file=str(log_file))
    assert reloaded.get_daily_error_summary()['total_errors'] == 1


def test_log_from_previous_day_is_discarded(tmp_path):
    log_file = tmp_path / 'errors.json'
    log_file.write_text(json.dumps({'date': '2000-01-01', 'error_count': 7, 'errors': []}))

    manager = DailyErrorLogManager(log_file=str(log_file))

    assert manager.get_daily_error_summary()['total_errors'] == 0


def test_clear_errors():
    manager = DailyErrorLogManager()
    manager.log_error('cli', 'failed', 'message')
    manager.clear_errors()

    assert manager.get_all_errors() == []


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, '-v']))
