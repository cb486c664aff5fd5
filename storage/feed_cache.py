"""DynamoDB-backed cache for the rendered feed."""
import logging
import time
from typing import Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.exceptions import CacheReadError, CacheWriteError
from processor.models import CachedDocument

logger = logging.getLogger(__name__)


class DynamoDBFeedCache:
    """
    Single-row feed cache stored in DynamoDB.

    The table is keyed by a string partition key named ``cache_id``. One
    row holds the last rendered document and the time it was stored; stale
    rows stay in place until the next successful regeneration overwrites
    them.
    """

    DEFAULT_TTL_SECONDS = 2 * 60 * 60

    def __init__(
        self,
        table_name: str,
        cache_id: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table
            cache_id: Fixed row identifier of the cached feed
            ttl_seconds: Maximum age of a cached document (default: 2 hours)
            clock: Returns the current Unix time; injectable for tests
        """
        self.table_name = table_name
        self.cache_id = cache_id
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(
            f"Initialized DynamoDBFeedCache for table: {table_name}",
            extra={'cache_id': cache_id}
        )

    def get(self) -> Optional[CachedDocument]:
        """
        Return the cached document if it is still fresh.

        Returns:
            CachedDocument, or None when missing or older than the TTL

        Raises:
            CacheReadError: If DynamoDB cannot be read
        """
        try:
            response = self.table.get_item(
                Key={'cache_id': self.cache_id},
                ConsistentRead=True
            )
        except (BotoCoreError, ClientError) as e:
            raise CacheReadError(f"Error reading cache row {self.cache_id}: {e}") from e

        item = response.get('Item')
        if not item:
            logger.info("Cache miss: no cached feed", extra={'cache_id': self.cache_id})
            return None

        cached = self._item_to_cached_document(item)
        if cached is None:
            return None

        now = self.clock()
        if not cached.is_fresh(now, self.ttl_seconds):
            logger.info(
                "Cache miss: cached feed is stale",
                extra={'cache_id': self.cache_id, 'age_seconds': int(now - cached.stored_at)}
            )
            return None

        logger.info("Cache hit", extra={'cache_id': self.cache_id})
        return cached

    def put(self, document: str) -> CachedDocument:
        """
        Store a freshly rendered document, overwriting any previous one.

        Args:
            document: Serialized feed

        Returns:
            The CachedDocument that was written

        Raises:
            CacheWriteError: If DynamoDB rejects the write
        """
        cached = CachedDocument(
            cache_id=self.cache_id,
            document=document,
            stored_at=int(self.clock())
        )

        try:
            self.table.put_item(Item=self._cached_document_to_item(cached))
        except (BotoCoreError, ClientError) as e:
            raise CacheWriteError(f"Error writing cache row {self.cache_id}: {e}") from e

        logger.info("Stored rendered feed in cache", extra={'cache_id': self.cache_id})
        return cached

    def _item_to_cached_document(self, item: dict) -> Optional[CachedDocument]:
        """
        Convert DynamoDB item to CachedDocument object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            CachedDocument object or None if conversion fails
        """
        try:
            return CachedDocument(
                cache_id=item['cache_id'],
                document=item['document'],
                stored_at=int(item['stored_at'])
            )
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring malformed cache row: {e}")
            return None

    def _cached_document_to_item(self, cached: CachedDocument) -> dict:
        return {
            'cache_id': cached.cache_id,
            'document': cached.document,
            'stored_at': cached.stored_at
        }
