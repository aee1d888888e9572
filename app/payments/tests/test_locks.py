"""
Tests for the settlement run lock.

Redis is mocked (see the mock_redis fixture); the lock is free unless a
test makes SET NX fail.
"""

import pytest

from payments.exceptions import SettlementLockError
from payments.locks import SETTLEMENT_LOCK_KEY, SETTLEMENT_LOCK_TTL, SettlementRunLock


class TestAcquire:
    def test_sets_run_key_with_ttl(self, mock_redis):
        lock = SettlementRunLock()

        lock.acquire()

        assert lock.is_held
        mock_redis.set.assert_called_once_with(
            SETTLEMENT_LOCK_KEY, lock.holder, nx=True, ex=SETTLEMENT_LOCK_TTL
        )

    def test_holder_identifies_worker_and_run(self, mock_redis):
        first = SettlementRunLock()
        second = SettlementRunLock()

        assert first.holder != second.holder
        host, pid, _token = first.holder.split(":")
        assert host
        assert pid.isdigit()

    def test_held_lock_reports_current_holder(self, mock_redis):
        mock_redis.set.return_value = False
        mock_redis.get.return_value = b"worker-2:4711:abc"
        lock = SettlementRunLock()

        with pytest.raises(SettlementLockError) as exc_info:
            lock.acquire()

        assert exc_info.value.error_code == "SETTLEMENT_IN_PROGRESS"
        assert exc_info.value.details == {
            "key": SETTLEMENT_LOCK_KEY,
            "holder": "worker-2:4711:abc",
        }
        assert not lock.is_held
        # Never waits for the other run
        mock_redis.set.assert_called_once()


class TestHeartbeat:
    def test_resets_ttl_for_owner(self, mock_redis):
        lock = SettlementRunLock(ttl=600)
        lock.acquire()

        assert lock.heartbeat() is True
        # eval(EXTEND_SCRIPT, 1, key, holder, ttl)
        _script, _numkeys, key, holder, ttl = mock_redis.eval.call_args[0]
        assert (key, holder, ttl) == (SETTLEMENT_LOCK_KEY, lock.holder, 600)

    def test_without_lock_does_nothing(self, mock_redis):
        assert SettlementRunLock().heartbeat() is False
        mock_redis.eval.assert_not_called()

    def test_lost_lock_logged_once(self, mock_redis, mocker):
        logger = mocker.patch("payments.locks.logger")
        lock = SettlementRunLock()
        lock.acquire()
        mock_redis.eval.return_value = 0

        assert lock.heartbeat() is False
        assert lock.heartbeat() is False

        logger.error.assert_called_once()


class TestRelease:
    def test_owner_deletes_key(self, mock_redis):
        lock = SettlementRunLock()
        lock.acquire()

        assert lock.release() is True
        assert not lock.is_held
        assert mock_redis.eval.call_args[0][2:] == (SETTLEMENT_LOCK_KEY, lock.holder)

    def test_expired_lock_not_deleted(self, mock_redis):
        """Another run took over after expiry; its key must survive."""
        lock = SettlementRunLock()
        lock.acquire()
        mock_redis.eval.return_value = 0

        assert lock.release() is False
        assert not lock.is_held

    def test_release_without_acquire(self, mock_redis):
        assert SettlementRunLock().release() is False
        mock_redis.eval.assert_not_called()

    def test_context_manager_releases_on_error(self, mock_redis):
        with pytest.raises(ValueError):
            with SettlementRunLock():
                raise ValueError("settlement blew up")

        mock_redis.eval.assert_called_once()
