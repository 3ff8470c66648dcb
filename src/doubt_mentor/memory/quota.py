from __future__ import annotations

import sqlite3
from datetime import date

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from doubt_mentor.errors import TransientError
from doubt_mentor.memory.store import MemoryStore
from doubt_mentor.models import QuotaDecision, QuotaRecord

DEFAULT_DAILY_LIMIT = 50
_MAX_CAS_ATTEMPTS = 5


class QuotaConflictError(Exception):
    """Another writer changed the quota row between our read and write."""


def _on_conflict_retry(retry_state) -> None:
    logger.debug(f"Quota write conflict, retrying (attempt {retry_state.attempt_number}/{_MAX_CAS_ATTEMPTS})")


class QuotaTracker:
    def __init__(self, store: MemoryStore, *, daily_limit: int = DEFAULT_DAILY_LIMIT):
        self._store = store
        self._daily_limit = daily_limit

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    def get_record(self, user_id: str) -> QuotaRecord | None:
        row = self._store.execute(
            "SELECT user_id, daily_count, last_reset_date FROM quotas WHERE user_id = ? LIMIT 1",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return QuotaRecord(
            user_id=row["user_id"],
            daily_count=int(row["daily_count"]),
            last_reset_date=date.fromisoformat(row["last_reset_date"]),
        )

    def check_and_increment(self, user_id: str, today: date) -> QuotaDecision:
        """Count one request against the user's daily quota.

        Fails closed: a storage error or unresolved write contention raises
        TransientError instead of letting the request through.
        """
        try:
            return self._check_and_increment(user_id, today)
        except sqlite3.Error as ex:
            logger.error(f"Quota storage failure for user {user_id}: {ex}")
            raise TransientError("Quota service temporarily unavailable") from ex
        except QuotaConflictError as ex:
            logger.error(f"Quota contention unresolved for user {user_id}")
            raise TransientError("Quota service temporarily unavailable") from ex

    @retry(
        retry=retry_if_exception_type(QuotaConflictError),
        wait=wait_random(min=0.005, max=0.05),
        stop=stop_after_attempt(_MAX_CAS_ATTEMPTS),
        before_sleep=_on_conflict_retry,
        reraise=True,
    )
    def _check_and_increment(self, user_id: str, today: date) -> QuotaDecision:
        record = self.get_record(user_id)

        if record is None:
            self._insert_first(user_id, today)
            return QuotaDecision(allowed=True, remaining=self._daily_limit - 1)

        if record.last_reset_date != today:
            self._compare_and_set(record, QuotaRecord(user_id, 1, today))
            return QuotaDecision(allowed=True, remaining=self._daily_limit - 1)

        if record.daily_count >= self._daily_limit:
            logger.info(f"Quota exceeded for user {user_id} ({record.daily_count}/{self._daily_limit})")
            return QuotaDecision(allowed=False, remaining=0)

        updated = QuotaRecord(user_id, record.daily_count + 1, today)
        self._compare_and_set(record, updated)
        return QuotaDecision(allowed=True, remaining=self._daily_limit - updated.daily_count)

    def _insert_first(self, user_id: str, today: date) -> None:
        cursor = self._store.execute(
            "INSERT OR IGNORE INTO quotas (user_id, daily_count, last_reset_date) VALUES (?, 1, ?)",
            (user_id, today.isoformat()),
        )
        if cursor.rowcount != 1:
            raise QuotaConflictError(user_id)

    def _compare_and_set(self, expected: QuotaRecord, updated: QuotaRecord) -> None:
        cursor = self._store.execute(
            """
            UPDATE quotas
            SET daily_count = ?, last_reset_date = ?
            WHERE user_id = ? AND daily_count = ? AND last_reset_date = ?
            """,
            (
                updated.daily_count,
                updated.last_reset_date.isoformat(),
                expected.user_id,
                expected.daily_count,
                expected.last_reset_date.isoformat(),
            ),
        )
        if cursor.rowcount != 1:
            raise QuotaConflictError(expected.user_id)
