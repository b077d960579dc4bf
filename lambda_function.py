"""AWS Lambda handler for the scheduled hessen-szene to Webflow sync."""
import json
import logging
import os
import time
from typing import Any, Dict

from processor.config import DEFAULT_SOURCE_URL, SyncOptions, parse_bool
from processor.exceptions import ConfigError, FetchError
from sync_runner import run_sync


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _error_response(status_code: int, message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(time.time() - start_time, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the Webflow event sync.

    Args:
        event: EventBridge event payload; may override "source_url" and "auto_publish"
        context: Lambda context object

    Returns:
        Response dict with statusCode and the sync report
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    source_url = (event or {}).get('source_url') or os.environ.get('SOURCE_URL') or DEFAULT_SOURCE_URL

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info('Lambda execution started', extra={'source_url': source_url})

    try:
        options = SyncOptions.from_env()
        if 'auto_publish' in (event or {}):
            options.auto_publish = parse_bool(event['auto_publish'])

        report = run_sync(source_url, options)

    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return _error_response(400, 'Invalid configuration', e, start_time)

    except FetchError as e:
        logger.error(
            f"Failed to fetch listing page: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(502, 'Failed to fetch listing page', e, start_time)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response(500, 'Sync failed', e, start_time)

    logger.info(
        'Lambda execution completed successfully',
        extra={
            'duration_seconds': round(time.time() - start_time, 2),
            'events_created': report.created,
            'events_updated': report.updated,
            'events_failed': report.failed
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': f"Successfully processed {report.created + report.updated} events",
            'summary': report.to_dict()
        }, ensure_ascii=False)
    }
