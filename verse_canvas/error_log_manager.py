"""
Daily error log: collects errors from the logging system and explicit reports,
resetting at the start of each day.
"""

import os
import json
import logging
import traceback
import threading
from collections import defaultdict
from datetime import datetime, date
from pathlib import Path
from typing import Any, Dict, List, Optional

SERVICES = ('layout_engine', 'image_generator', 'verse_manager', 'verse_cache', 'service_manager', 'cli')
MAX_ERRORS = 25


class ErrorCaptureHandler(logging.Handler):
    def __init__(self, error_manager: 'DailyErrorLogManager'):
        super().__init__(level=logging.ERROR)
        self.error_manager = error_manager

    def emit(self, record: logging.LogRecord):
        # Already reported through log_error
        if getattr(record, 'error_recorded', False):
            return
        self.error_manager._capture_log_error(record)


class DailyErrorLogManager:
    """Keeps today's most recent errors with per-service and per-type counts."""

    def __init__(self, log_file: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        log_file = log_file or os.getenv('ERROR_LOG_FILE')
        self.log_file = Path(log_file) if log_file else None  # in-memory only when unset
        self.lock = threading.RLock()
        self.current_date = date.today().isoformat()
        self.error_logs = self._load_error_logs()
        self.handler = None

    def configure(self, log_file: Optional[str] = None):
        """Re-read ERROR_LOG_FILE (or use log_file), e.g. once a .env file has been loaded."""
        log_file = log_file or os.getenv('ERROR_LOG_FILE')
        with self.lock:
            self.log_file = Path(log_file) if log_file else None
            if self.log_file and self.log_file.exists():
                self.error_logs = self._load_error_logs()
            else:
                self._save_error_logs()
        return self.log_file

    def install_handler(self):
        """Capture ERROR records from every logger. Call after logging is configured."""
        if self.handler is None:
            self.handler = ErrorCaptureHandler(self)
            logging.getLogger().addHandler(self.handler)
        return self.handler

    def _load_error_logs(self) -> Dict[str, Any]:
        """Load today's log from file; anything from a previous day is dropped."""
        if not self.log_file or not self.log_file.exists():
            return self._create_new_log_structure()

        try:
            with open(self.log_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read error log {self.log_file}: {e}")
            return self._create_new_log_structure()

        if data.get('date') != self.current_date:
            self.logger.info(f"New day detected ({self.current_date}), resetting error logs")
            return self._create_new_log_structure()

        data['error_summary'] = defaultdict(int, data.get('error_summary', {}))
        return data

    def _create_new_log_structure(self) -> Dict[str, Any]:
        return {
            'date': self.current_date,
            'created_at': datetime.now().isoformat(),
            'error_count': 0,
            'errors': [],
            'error_summary': defaultdict(int),
            'services': {name: {'errors': 0, 'last_error': None} for name in SERVICES + ('other',)},
        }

    def _save_error_logs(self):
        if not self.log_file:
            return
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'w') as f:
                json.dump(self.error_logs, f, indent=2, default=str)
        except OSError as e:
            # Not logged at ERROR: that would feed back into this handler
            self.logger.warning(f"Error saving error log {self.log_file}: {e}")

    def _roll_day(self):
        today = date.today().isoformat()
        if today != self.current_date:
            self.current_date = today
            self.error_logs = self._create_new_log_structure()
            self.logger.info(f"Error logs reset for new day: {today}")

    def _get_service_name(self, logger_name: str) -> str:
        for service in SERVICES:
            if service in logger_name.lower():
                return service
        return 'other'

    def _capture_log_error(self, record: logging.LogRecord):
        error_info = {
            'timestamp': datetime.now().isoformat(),
            'service': self._get_service_name(record.name),
            'error_type': record.levelname,
            'logger': record.name[:50],
            'message': record.getMessage()[:200],
            'function': record.funcName[:30],
            'line': record.lineno,
        }
        if record.exc_info:
            # Last lines of the traceback only
            error_info['traceback'] = ''.join(traceback.format_exception(*record.exc_info)[-5:])[:500]
        self._add_error(error_info)

    def log_error(self, service: str, error_type: str, message: str,
                  details: Optional[Dict] = None, exception: Optional[BaseException] = None):
        """Record an error reported directly by a component."""
        error_info = {
            'timestamp': datetime.now().isoformat(),
            'service': service if service in SERVICES else 'other',
            'error_type': error_type,
            'message': message[:200],
            'details': details or {},
        }
        if exception is not None:
            error_info['exception'] = {
                'type': type(exception).__name__,
                'args': str(exception.args)[:150],
            }
        self._add_error(error_info)

    def _add_error(self, error_info: Dict):
        with self.lock:
            self._roll_day()
            self.error_logs['errors'].append(error_info)
            self.error_logs['error_count'] += 1

            service = self.error_logs['services'][error_info['service']]
            service['errors'] += 1
            service['last_error'] = error_info['timestamp']

            self.error_logs['error_summary'][error_info['error_type']] += 1

            if len(self.error_logs['errors']) > MAX_ERRORS:
                self.error_logs['errors'] = self.error_logs['errors'][-MAX_ERRORS:]

            self._save_error_logs()

    def get_daily_error_summary(self) -> Dict[str, Any]:
        with self.lock:
            self._roll_day()
            return {
                'date': self.error_logs['date'],
                'total_errors': self.error_logs['error_count'],
                'error_types': dict(self.error_logs['error_summary']),
                'services': {k: v for k, v in self.error_logs['services'].items() if v['errors'] > 0},
                'recent_errors': self.error_logs['errors'][-10:],
            }

    def get_all_errors(self) -> List[Dict]:
        with self.lock:
            return list(self.error_logs['errors'])

    def clear_errors(self):
        with self.lock:
            self.error_logs = self._create_new_log_structure()
            self._save_error_logs()
            self.logger.info("Error logs manually cleared")


# Global instance
error_log_manager = DailyErrorLogManager()
