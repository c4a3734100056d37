"""AWS Lambda handler for MySideline carnival sync."""
import json
import logging
import os
import time
from typing import Any, Dict, Mapping, Optional

from processor.models import SyncSettings
from processor.sync_service import MySidelineSyncService
from scraper.mysideline_scraper import MySidelineScraper
from storage.carnival_table import CarnivalTable
from storage.sync_log_table import SyncLogTable

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_LOG_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


# Configure JSON logging
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

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


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

    # Create new handler with JSON formatter
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    # Set log level
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_settings(environ: Optional[Mapping[str, str]] = None) -> SyncSettings:
    """
    Read sync configuration from environment variables.

    Args:
        environ: Mapping to read from, defaults to os.environ

    Returns:
        SyncSettings
    """
    environ = os.environ if environ is None else environ
    return SyncSettings(
        carnivals_table_name=environ.get('CARNIVALS_TABLE_NAME', 'carnivals'),
        sync_log_table_name=environ.get('SYNC_LOG_TABLE_NAME', 'sync-logs'),
        region_name=environ.get('AWS_REGION') or None,
        log_level=environ.get('LOG_LEVEL', 'INFO'),
        sync_enabled=_env_flag(environ, 'MYSIDELINE_SYNC_ENABLED', True),
        use_mock=_env_flag(environ, 'MYSIDELINE_USE_MOCK', False),
        enable_scraping=_env_flag(environ, 'MYSIDELINE_ENABLE_SCRAPING', True),
        sync_interval_hours=float(environ.get('MYSIDELINE_SYNC_INTERVAL_HOURS', '24')),
        request_timeout=int(environ.get('MYSIDELINE_REQUEST_TIMEOUT', '60')),
        search_url=environ.get('MYSIDELINE_URL') or None,
        api_url=environ.get('MYSIDELINE_API_URL') or None,
        event_url=environ.get('MYSIDELINE_EVENT_URL') or None,
        environment=environ.get('ENVIRONMENT', 'production')
    )


def _response(status_code: int, body: Dict[str, Any], start_time: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - start_time, 2)
    return {'statusCode': status_code, 'body': json.dumps(body, default=str)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for MySideline carnival sync.

    The payload may set "force" to skip the sync interval check and
    "triggerSource" to label the run in the sync log. With "action" set to
    "status" it only reports the last sync and recent sync statistics.

    Args:
        event: EventBridge or manual invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    start_time = time.time()
    logger = logging.getLogger(__name__)

    try:
        settings = load_settings()
    except ValueError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {str(e)}", exc_info=True)
        return _response(
            500,
            {
                'message': 'Invalid configuration',
                'error': str(e),
                'error_type': type(e).__name__
            },
            start_time
        )

    event = event or {}
    force = bool(event.get('force', False))
    trigger_source = event.get('triggerSource') or ('manual' if force else 'scheduled')

    # Initialize logging
    setup_logging(settings.log_level)

    # Log Lambda execution start
    logger.info(
        "Lambda execution started",
        extra={
            'carnivals_table': settings.carnivals_table_name,
            'sync_log_table': settings.sync_log_table_name,
            'use_mock': settings.use_mock,
            'trigger_source': trigger_source,
            'force': force
        }
    )

    if not settings.sync_enabled:
        logger.info("MySideline sync is disabled via MYSIDELINE_SYNC_ENABLED")
        return _response(
            200,
            {'message': 'Sync disabled via configuration', 'events_processed': 0},
            start_time
        )

    try:
        # Instantiate components
        carnival_table = CarnivalTable(
            settings.carnivals_table_name,
            region_name=settings.region_name
        )
        sync_log_table = SyncLogTable(
            settings.sync_log_table_name,
            region_name=settings.region_name
        )
        scraper = MySidelineScraper(
            timeout=settings.request_timeout,
            use_mock=settings.use_mock,
            enable_scraping=settings.enable_scraping,
            search_url=settings.search_url,
            api_url=settings.api_url,
            event_url=settings.event_url
        )
        service = MySidelineSyncService(
            carnival_table,
            sync_log_table,
            sync_interval_hours=settings.sync_interval_hours,
            environment=settings.environment
        )

        if event.get('action') == 'status':
            return _response(
                200,
                {'message': 'Sync status', 'status': service.get_sync_status()},
                start_time
            )

        # Data hygiene runs on every sync invocation, independent of the throttle
        deactivation = service.deactivate_past_carnivals()
        deactivation_summary = {
            'success': deactivation.success,
            'deactivated_count': deactivation.deactivated_count
        }
        if deactivation.error:
            deactivation_summary['error'] = deactivation.error

        if not force and not service.should_run_initial_sync():
            return _response(
                200,
                {
                    'message': 'Sync skipped - recent sync found',
                    'deactivation': deactivation_summary
                },
                start_time
            )

        sync_result = service.run_sync(scraper, trigger_source=trigger_source)

        if not sync_result.success:
            logger.error(
                "Lambda execution finished with a failed sync",
                extra={'error': sync_result.error}
            )
            return _response(
                500,
                {
                    'message': 'Sync failed',
                    'result': sync_result.to_dict(),
                    'deactivation': deactivation_summary
                },
                start_time
            )

        # Log execution summary
        logger.info(
            "Lambda execution completed successfully",
            extra={
                'events_processed': sync_result.events_processed,
                'events_created': sync_result.events_created,
                'events_updated': sync_result.events_updated,
                'errors': sync_result.errors
            }
        )

        return _response(
            200,
            {
                'message': 'Sync completed successfully',
                'result': sync_result.to_dict(),
                'deactivation': deactivation_summary
            },
            start_time
        )

    except Exception as e:
        # Log error
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )

        # Return error response
        return _response(
            500,
            {
                'message': 'Sync failed',
                'error': str(e),
                'error_type': type(e).__name__
            },
            start_time
        )
