"""
Run lock for the weekly settlement.

Discovery is not safe under concurrent execution: two overlapping runs
could both select the same unprocessed request before either marks it
processed. SettlementRunLock lets exactly one run proceed across worker
processes and hosts; any other run is skipped, never queued.

The lock is a Redis key set with NX and a TTL, so a crashed worker cannot
block next week's run. Its value names the holder (host, pid, token) so a
skipped run can report who is settling, and only that holder may extend
or delete it. The run calls heartbeat() after every request and payment
to push the expiry out.

Usage:
    from payments.locks import SettlementRunLock

    with SettlementRunLock() as lock:
        for payment_id in payment_ids:
            execute(payment_id)
            lock.heartbeat()

Note:
    Row-level exclusion inside a run uses select_for_update() in
    transaction.atomic() blocks; this lock only guards whole runs.
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from typing import TYPE_CHECKING

from django_redis import get_redis_connection

from payments.exceptions import SettlementLockError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

logger = logging.getLogger(__name__)

SETTLEMENT_LOCK_KEY = "lock:settlement:weekly"
SETTLEMENT_LOCK_TTL = 30 * 60  # seconds, reset by every heartbeat


class SettlementRunLock:
    """
    Redis lock owned by a single settlement run.

    Args:
        ttl: Seconds until the lock expires without a heartbeat

    Raises on acquire():
        SettlementLockError: Another run holds the lock. details carries
            the key and the current holder.
    """

    # Delete only if we still own the key
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    # Reset the expiry only if we still own the key
    EXTEND_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("expire", KEYS[1], ARGV[2])
    else
        return 0
    end
    """

    def __init__(self, ttl: int = SETTLEMENT_LOCK_TTL) -> None:
        self.key = SETTLEMENT_LOCK_KEY
        self.ttl = ttl
        self.holder = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex}"
        self._held = False
        self._lost = False
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> None:
        """Take the lock or raise SettlementLockError without waiting."""
        redis = self._get_redis()
        if not redis.set(self.key, self.holder, nx=True, ex=self.ttl):
            current = redis.get(self.key)
            if isinstance(current, bytes):
                current = current.decode()
            raise SettlementLockError(
                "A settlement run is already in progress",
                details={"key": self.key, "holder": current},
            )
        self._held = True
        self._lost = False

    def heartbeat(self) -> bool:
        """
        Reset the TTL after a unit of work.

        Returns False once the lock has expired and been taken by another
        run. The loss is logged once; the run carries on, since every
        payment is claimed under a row lock anyway.
        """
        if not self._held:
            return False

        extended = self._get_redis().eval(
            self.EXTEND_SCRIPT, 1, self.key, self.holder, self.ttl
        )
        if extended:
            return True

        if not self._lost:
            self._lost = True
            logger.error(
                "Settlement run lock expired and is no longer ours",
                extra={"key": self.key, "holder": self.holder, "ttl": self.ttl},
            )
        return False

    def release(self) -> bool:
        """Delete the lock if this run still owns it."""
        if not self._held:
            return False

        self._held = False
        return bool(
            self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self.holder)
        )

    @property
    def is_held(self) -> bool:
        return self._held

    def __enter__(self) -> SettlementRunLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


__all__ = ["SETTLEMENT_LOCK_KEY", "SETTLEMENT_LOCK_TTL", "SettlementRunLock"]
