"""Logging configuration for the backend and the import pipelines."""
import logging
import logging.handlers
import os
from datetime import datetime
from pythonjsonlogger import jsonlogger

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
MAX_BYTES = 10485760  # 10MB
BACKUP_COUNT = 10


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging."""

    def add_fields(self, log_record, record, message_dict):
        super(CustomJsonFormatter, self).add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.utcnow().isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno


def _rotating_handler(path, level, formatter):
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_app_logging(app, log_path):
    """Setup application-wide logging."""
    os.makedirs(log_path, exist_ok=True)

    # Remove default handlers
    app.logger.handlers = []

    text_formatter = logging.Formatter(TEXT_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(text_formatter)

    file_handler = _rotating_handler(os.path.join(log_path, 'app.log'), logging.INFO, text_formatter)
    json_handler = _rotating_handler(os.path.join(log_path, 'app.json.log'), logging.INFO, CustomJsonFormatter())
    error_handler = _rotating_handler(os.path.join(log_path, 'errors.log'), logging.ERROR, text_formatter)

    for handler in (console_handler, file_handler, json_handler, error_handler):
        app.logger.addHandler(handler)

    # Service and repository modules log through the root logger
    root_logger = logging.getLogger()
    if not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root_logger.handlers):
        root_logger.addHandler(json_handler)
    root_logger.setLevel(logging.INFO)

    app.logger.setLevel(logging.INFO)
    app.logger.info('Application logging configured')


def get_import_logger(sync_type, log_path=None):
    """Get a logger that also writes a per-pipeline file under logs/imports/."""
    logger = logging.getLogger(f'odoo_import.{sync_type}')
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    log_dir = os.path.join(log_path or 'logs', 'imports')
    os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.FileHandler(os.path.join(log_dir, f'{sync_type}.log'))
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    ))
    logger.addHandler(file_handler)

    return logger
