"""
Fixed-window rate limiter persisted in the database.
"""
import logging
import math
import time

from sqlalchemy.exc import IntegrityError

from errors import RateLimitExceeded
from models import db, RateLimitBucket

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Allows `limit` hits per `window_seconds` for each key. Counters live in the
    store so every worker process sees the same window.
    """

    def __init__(self, name, limit, window_seconds, clock=time.time):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock

    def hit(self, key):
        """
        Count one hit for `key`, raising RateLimitExceeded if the window is already full.
        """
        bucket_key = f"{self.name}:{key}"
        now = self.clock()

        try:
            self._hit(bucket_key, now)
        except IntegrityError:
            # two first hits raced on the same new bucket
            db.session.rollback()
            self._hit(bucket_key, now)

    def _hit(self, bucket_key, now):
        bucket = (RateLimitBucket.query
                  .filter_by(key=bucket_key)
                  .with_for_update()
                  .first())

        if bucket is None:
            db.session.add(RateLimitBucket(key=bucket_key, window_start=now, count=1))
            db.session.commit()
            return

        if now >= bucket.window_start + self.window_seconds:
            bucket.window_start = now
            bucket.count = 0

        if bucket.count >= self.limit:
            retry_after = math.ceil(bucket.window_start + self.window_seconds - now)
            db.session.rollback()
            logger.info("Rate limit %s hit for %s, retry after %ss", self.name, bucket_key, retry_after)
            raise RateLimitExceeded(retry_after)

        bucket.count += 1
        db.session.commit()
