"""
Claim Coordination

Decides which scanner gets to notify for an entry. The flag transition on the
entry row is the lock: no in-process lock, lease table or leader election.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from app.services.schedule_store import ScheduleStore


logger = logging.getLogger(__name__)


class ClaimOutcome(str, Enum):
    WON = "won"
    ALREADY_CLAIMED = "already_claimed"
    ERROR = "error"


class ClaimCoordinator:
    """
    Attempts the one-time false -> true transition of an entry's
    pre-playback flag on behalf of a scan cycle.
    """

    def __init__(
        self,
        store: ScheduleStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def claim(self, schedule_id: str) -> ClaimOutcome:
        """
        Try to claim an entry for dispatch.

        Args:
            schedule_id: Entry to claim

        Returns:
            WON if this caller must dispatch, ALREADY_CLAIMED if another worker or
            an earlier tick handled it (or it was deleted), ERROR if the store call
            failed and the entry should be retried on a later tick
        """
        try:
            modified = await self._store.claim_preplay(schedule_id, self._clock())
        except Exception as exc:
            logger.error(
                "[SCHEDULER] claim failed for schedule id=%s: %s",
                schedule_id,
                exc,
                exc_info=True,
            )
            return ClaimOutcome.ERROR

        if modified > 0:
            return ClaimOutcome.WON

        logger.debug("[SCHEDULER] schedule id=%s already published by another worker", schedule_id)
        return ClaimOutcome.ALREADY_CLAIMED
