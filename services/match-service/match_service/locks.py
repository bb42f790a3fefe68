import asyncio
import weakref
from contextlib import asynccontextmanager

from redis.exceptions import LockError

from .errors import MatchComputationBusy


class UserLocks:
    """
    Serializes match computations per requester.

    With a Redis client the lock is shared by every service instance;
    without one it only covers this process.
    """

    def __init__(self, redis_client=None, timeout_seconds: float = 30.0):
        self.redis_client = redis_client
        self.timeout_seconds = timeout_seconds
        # entries vanish once no caller holds or waits on the lock
        self._local: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _key(self, user_id: str) -> str:
        return f"lock:match_compute:{user_id}"

    @asynccontextmanager
    async def hold(self, user_id: str):
        if self.redis_client is not None:
            lock = self.redis_client.lock(
                self._key(user_id),
                timeout=self.timeout_seconds,
                blocking_timeout=self.timeout_seconds,
            )
            try:
                acquired = await lock.acquire()
            except LockError:
                acquired = False
            if not acquired:
                raise MatchComputationBusy(f"Match computation already running for {user_id}")
            try:
                yield
            finally:
                try:
                    await lock.release()
                except LockError:
                    # expired while we held it; another caller may own it now
                    print(f"[match-service] compute lock for {user_id} expired before release")
            return

        lock = self._local.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local[user_id] = lock

        acquire = asyncio.ensure_future(lock.acquire())
        try:
            done, _ = await asyncio.wait({acquire}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            acquire.cancel()
            raise
        if not done:
            acquire.cancel()
            try:
                await acquire
            except asyncio.CancelledError:
                pass
            else:
                # acquired just as we gave up waiting
                lock.release()
            raise MatchComputationBusy(f"Match computation already running for {user_id}")
        try:
            yield
        finally:
            lock.release()
