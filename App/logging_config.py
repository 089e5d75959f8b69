"""Centralized logging configuration for the planner service and CLI."""
from __future__ import annotations

import json
import logging
import os
import socket
import sys
import time
from typing import Any, Dict

from flask import Flask

DEFAULT_SERVICE_NAME = 'school-visit-planner'

_LOG_RECORD_RESERVED = set(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__
) | {'message', 'asctime'}


def _extract_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _LOG_RECORD_RESERVED and not key.startswith('_')
    }


class JsonLogFormatter(logging.Formatter):
    """One JSON document per record, for log shippers."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name
        self._host = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'timestamp': int(record.created * 1000),
            'logger': record.name,
            'msg': record.getMessage(),
            'host': self._host,
            'service': self._service,
            'status': record.levelname.lower(),
            'thread': record.threadName,
        }

        extras = _extract_extras(record)
        if extras:
            payload.update(extras)

        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class HybridDevFormatter(logging.Formatter):
    """Readable header line followed by the structured ``extra`` fields."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(record.created))
        header = f"[{timestamp}] | {record.levelname} | [{record.name}] {record.getMessage()}"

        extras = _extract_extras(record)
        if not extras and not record.exc_info:
            return header

        lines = [header]
        if extras:
            lines.append(json.dumps(extras, ensure_ascii=False, indent=2, default=str))
        if record.exc_info:
            lines.append(self.formatException(record.exc_info))
        return '\n'.join(lines)


def _install_handler(service_name: str, log_level: str, env: str) -> logging.Logger:
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in tuple(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if env in {'production', 'staging'}:
        formatter: logging.Formatter = JsonLogFormatter(service_name)
    else:
        formatter = HybridDevFormatter(service_name)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.captureWarnings(True)
    return root_logger


def configure_logging(app: Flask) -> None:
    """Configure logging for the application based on environment."""
    service_name = app.config.get('SERVICE_NAME', DEFAULT_SERVICE_NAME)
    log_level = str(app.config.get('LOG_LEVEL', os.environ.get('LOG_LEVEL', 'INFO'))).upper()
    env = app.config.get('ENV', os.environ.get('ENV', 'development'))

    root_logger = _install_handler(service_name, log_level, env)

    # PuLP logs every solver invocation at INFO; keep it quiet unless solver output is wanted
    pulp_level = logging.DEBUG if app.config.get('LOG_SOLVER_OUTPUT') else logging.WARNING
    logging.getLogger('pulp').setLevel(pulp_level)

    root_logger.info(
        'Logging initialized',
        extra={
            'event': 'logging_initialized',
            'service': service_name,
            'environment': env,
            'level': log_level,
        },
    )
