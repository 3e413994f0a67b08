# marketplace/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from marketplace.utils.settings import REDIS_URL, JOB_LOCK_TTL_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete, runs atomically inside redis
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(RedisError),
    )


class LockService:
    """
    Single-instance guard for scheduled jobs.
    -acquire: SET NX EX, the TTL frees the lock if a worker dies mid-run
    -release: only the holder's token deletes the key
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(job_name: str) -> str:
        return f"job:{job_name}:lock"

    @redis_retry()
    def acquire_job_lock(self, job_name: str, token: str, ttl: int = JOB_LOCK_TTL_SECONDS) -> bool:
        key = self._key(job_name)
        logger.info(f"Acquire lock {key}")
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_job_lock(self, job_name: str, token: str) -> bool:
        key = self._key(job_name)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def job_lock(self, job_name: str, ttl: int = JOB_LOCK_TTL_SECONDS):
        """Yields True when this caller holds the lock, False when another run does."""
        token = uuid.uuid4().hex
        acquired = self.acquire_job_lock(job_name, token, ttl)
        try:
            yield acquired
        finally:
            if acquired:
                self.release_job_lock(job_name, token)
