"""AWS Lambda handler for the Calendar RSS feed."""
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError

from config import Config
from feed.rss_renderer import render
from fetcher.ical_reader import ICalReader
from processor.aggregator import LookAheadWindow, collect_events
from processor.event_normalizer import EventNormalizer
from processor.exceptions import AuthError, CacheReadError, CacheWriteError, ConfigError
from storage.feed_cache import DynamoDBFeedCache

logger = logging.getLogger(__name__)

RSS_HEADERS = {
    'Content-Type': 'application/rss+xml; charset=utf-8',
    'X-Robots-Tag': 'noindex, nofollow, noarchive',
    'Cache-Control': 'public, max-age=3600, stale-while-revalidate=60',
}

UNAUTHORIZED_BODY = 'Unauthorized'
ERROR_BODY = 'Error Fetching Calendar'

# Standard LogRecord attributes; anything else was passed through ``extra``
_RESERVED_LOG_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message'}

_config: Optional[Config] = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
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

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_config() -> Config:
    """Load configuration on the first invocation and reuse it afterwards."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def build_cache(config: Config) -> Optional[DynamoDBFeedCache]:
    if not config.cache_enabled:
        return None
    return DynamoDBFeedCache(
        table_name=config.cache_table_name,
        cache_id=config.cache_id,
        ttl_seconds=config.cache_ttl_seconds
    )


def _response(status_code: int, body: str, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': dict(headers or {'Content-Type': 'text/plain; charset=utf-8'}),
        'body': body
    }


def authorize(supplied_key: Optional[str], expected_key: str) -> None:
    """
    Check the caller's credential against the configured secret.

    Raises:
        AuthError: If the key is missing or does not match exactly
    """
    if supplied_key is None or not hmac.compare_digest(
        supplied_key.encode('utf-8'), expected_key.encode('utf-8')
    ):
        raise AuthError("api_key missing or invalid")


def handle_request(
    api_key: Optional[str],
    feed_origin: str,
    config: Config,
    reader: ICalReader,
    cache: Optional[DynamoDBFeedCache] = None
) -> Dict[str, Any]:
    """
    Serve one feed request.

    Args:
        api_key: Credential supplied by the caller
        feed_origin: Origin the feed is served from
        config: Runtime configuration
        reader: Calendar source reader
        cache: Result cache, or None to regenerate on every request

    Returns:
        API Gateway proxy response dict
    """
    start_time = time.time()

    try:
        authorize(api_key, config.api_key)
    except AuthError as e:
        logger.warning(f"Rejected request: {e}")
        return _response(401, UNAUTHORIZED_BODY)

    if cache is not None:
        try:
            cached = cache.get()
        except CacheReadError as e:
            logger.error(
                f"Cache read failed, regenerating feed: {e}",
                extra={'error_type': type(e).__name__}
            )
            cached = None

        if cached is not None:
            logger.info(
                "Serving cached feed",
                extra={'duration_seconds': round(time.time() - start_time, 2)}
            )
            return _response(200, cached.document, RSS_HEADERS)

    try:
        window = None
        if config.filter_upcoming:
            window = LookAheadWindow.starting_now(config.look_ahead_days)

        logger.info(
            "Fetching events from calendars",
            extra={'source_count': len(config.ical_urls)}
        )
        events = collect_events(reader, config.ical_urls, window)

        normalizer = EventNormalizer(config.render_policy)
        items = normalizer.to_feed_items(events, feed_origin)

        document = render(
            items,
            channel_title=config.feed_title,
            channel_description=config.feed_description,
            channel_link=config.feed_link or feed_origin
        )
    except Exception as e:
        logger.error(
            f"Failed to generate feed: {e}",
            extra={
                'error_type': type(e).__name__,
                'source_url': getattr(e, 'url', None),
                'duration_seconds': round(time.time() - start_time, 2)
            },
            exc_info=True
        )
        return _response(500, ERROR_BODY)

    if cache is not None:
        try:
            cache.put(document)
        except CacheWriteError as e:
            logger.error(
                f"Cache write failed, returning fresh feed anyway: {e}",
                extra={'error_type': type(e).__name__}
            )

    logger.info(
        "Generated feed",
        extra={
            'event_count': len(items),
            'duration_seconds': round(time.time() - start_time, 2)
        }
    )
    return _response(200, document, RSS_HEADERS)


def request_origin(event: Dict[str, Any], fallback: Optional[str] = None) -> str:
    """
    Work out the public origin of the feed from a proxy event.

    Args:
        event: Function URL or API Gateway proxy event
        fallback: Origin to use when the event carries no host

    Returns:
        Origin such as 'https://example.lambda-url.us-east-1.on.aws'
    """
    headers = {key.lower(): value for key, value in (event.get('headers') or {}).items()}
    host = headers.get('host') or (event.get('requestContext') or {}).get('domainName')
    if not host:
        return fallback or ''

    scheme = headers.get('x-forwarded-proto', 'https')
    return f"{scheme}://{host}"


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the Calendar RSS feed.

    Args:
        event: Function URL or API Gateway proxy event
        context: Lambda context object

    Returns:
        Response dict with statusCode, headers and body
    """
    try:
        config = get_config()
    except ConfigError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}", exc_info=True)
        return _response(500, ERROR_BODY)

    setup_logging(config.log_level)

    params = event.get('queryStringParameters') or {}
    feed_origin = request_origin(event, fallback=config.feed_link)

    reader = ICalReader(timeout=config.timeout_seconds)
    try:
        cache = build_cache(config)
    except BotoCoreError as e:
        logger.error(
            f"Cache unavailable, continuing without it: {e}",
            extra={'error_type': type(e).__name__}
        )
        cache = None

    return handle_request(
        api_key=params.get('api_key'),
        feed_origin=feed_origin,
        config=config,
        reader=reader,
        cache=cache
    )
