"""Runtime configuration for the Calendar RSS Lambda."""
import hashlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from processor.event_normalizer import RenderPolicy
from processor.exceptions import ConfigError

logger = logging.getLogger(__name__)

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off', '')


@dataclass(frozen=True)
class Config:
    """
    Settings read once at cold start and passed to the request handler.

    Pipeline components never look at the environment themselves; they
    receive the values they need from this object.
    """
    api_key: str
    ical_urls: Tuple[str, ...] = ()
    filter_upcoming: bool = False
    look_ahead_days: int = 3
    render_policy: RenderPolicy = RenderPolicy.PLAIN
    feed_title: str = 'Personal Calendar'
    feed_description: str = 'RSS Feed Generated From My Personal Calendar'
    feed_link: Optional[str] = None
    cache_table_name: Optional[str] = None
    cache_key: Optional[str] = None
    cache_ttl_seconds: int = 7200
    timeout_seconds: int = 30
    log_level: str = 'INFO'

    @property
    def cache_enabled(self) -> bool:
        return bool(self.cache_table_name)

    @property
    def cache_id(self) -> str:
        """
        Row id of the cached feed.

        An explicit CACHE_KEY wins. Otherwise the id is a digest of every
        configured setting that ends up in the document: sources, filter,
        render policy and channel metadata. The request origin is not part
        of it; deployments served from different hosts that share a table
        need FEED_LINK or CACHE_KEY set to keep their feeds apart.

        Returns:
            Cache row identifier
        """
        if self.cache_key:
            return self.cache_key

        fingerprint = json.dumps(
            {
                'ical_urls': list(self.ical_urls),
                'filter_upcoming': self.filter_upcoming,
                'look_ahead_days': self.look_ahead_days,
                'render_policy': self.render_policy.value,
                'feed_title': self.feed_title,
                'feed_description': self.feed_description,
                'feed_link': self.feed_link,
            },
            sort_keys=True
        )
        digest = hashlib.sha256(fingerprint.encode('utf-8')).hexdigest()
        return f"calendar-rss-{digest[:16]}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Config instance

        Raises:
            ConfigError: If a required value is missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        api_key = env.get('API_KEY')
        if not api_key:
            raise ConfigError("API_KEY is required")

        config = cls(
            api_key=api_key,
            ical_urls=_parse_url_list(env.get('ICAL_URLS')),
            filter_upcoming=_parse_bool('FILTER_UPCOMING', env.get('FILTER_UPCOMING', 'false')),
            look_ahead_days=_parse_int('LOOK_AHEAD_DAYS', env.get('LOOK_AHEAD_DAYS', '3')),
            render_policy=_parse_policy(env.get('RENDER_POLICY', 'plain')),
            feed_title=env.get('FEED_TITLE', cls.feed_title),
            feed_description=env.get('FEED_DESCRIPTION', cls.feed_description),
            feed_link=env.get('FEED_LINK') or None,
            cache_table_name=env.get('CACHE_TABLE_NAME') or None,
            cache_key=env.get('CACHE_KEY') or None,
            cache_ttl_seconds=_parse_int('CACHE_TTL_SECONDS', env.get('CACHE_TTL_SECONDS', '7200'), minimum=1),
            timeout_seconds=_parse_int('TIMEOUT_SECONDS', env.get('TIMEOUT_SECONDS', '30'), minimum=1),
            log_level=env.get('LOG_LEVEL', 'INFO'),
        )

        logger.debug(
            "Loaded configuration",
            extra={
                'source_count': len(config.ical_urls),
                'filter_upcoming': config.filter_upcoming,
                'cache_enabled': config.cache_enabled,
            }
        )
        return config


def _parse_url_list(raw: Optional[str]) -> Tuple[str, ...]:
    if raw is None or not raw.strip():
        return ()

    try:
        urls = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"ICAL_URLS is not valid JSON: {e}") from e

    if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
        raise ConfigError("ICAL_URLS must be a JSON array of strings")

    return tuple(urls)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str, minimum: int = 0) -> int:
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e

    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _parse_policy(raw: str) -> RenderPolicy:
    try:
        return RenderPolicy(raw.strip().lower())
    except ValueError as e:
        choices = ', '.join(policy.value for policy in RenderPolicy)
        raise ConfigError(f"RENDER_POLICY must be one of {choices}, got {raw!r}") from e
