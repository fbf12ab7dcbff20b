import logging

from ..errors import QuotaExceeded, RecordConflict

logger = logging.getLogger(__name__)

TABLE = "quota_records"
DEFAULT_DAILY_LIMIT = 3
# rounds of read / compare-and-swap before giving up under contention
MAX_CAS_ROUNDS = 8


class QuotaTracker:
    """Daily cap on successful submissions, kept in the record store.

    One ``quota_records`` row per (actor, date). Increments are a
    compare-and-swap on ``used_attempts`` so two concurrent submissions can
    never both take the last slot.
    """

    def __init__(self, records, daily_limit=DEFAULT_DAILY_LIMIT):
        self.records = records
        self.daily_limit = daily_limit

    async def _row(self, actor_id, day):
        rows = await self.records.query(TABLE, {"actor_id": actor_id, "date": day}, limit=1)
        return rows[0] if rows else None

    async def used(self, actor_id, day) -> int:
        row = await self._row(actor_id, day)
        return row["used_attempts"] if row else 0

    async def remaining(self, actor_id, day) -> int:
        return max(0, self.daily_limit - await self.used(actor_id, day))

    async def record_success(self, actor_id, day) -> int:
        """Count one successful submission; returns the new remaining count."""
        for _ in range(MAX_CAS_ROUNDS):
            row = await self._row(actor_id, day)
            if row is None:
                if self.daily_limit < 1:
                    break
                try:
                    await self.records.insert(TABLE, {"actor_id": actor_id, "date": day, "used_attempts": 1})
                except RecordConflict:
                    # another submission created the row first
                    continue
                return self.daily_limit - 1
            used = row["used_attempts"]
            if used >= self.daily_limit:
                break
            try:
                await self.records.update(
                    TABLE, row["id"], {"used_attempts": used + 1}, expected={"used_attempts": used}
                )
            except RecordConflict:
                logger.debug("quota CAS lost for actor %s on %s, retrying", actor_id, day)
                continue
            return self.daily_limit - (used + 1)
        else:
            logger.warning("quota increment for actor %s on %s kept conflicting", actor_id, day)
        raise QuotaExceeded(
            f"Daily limit of {self.daily_limit} submissions reached",
            actor_id=actor_id, date=str(day),
        )
