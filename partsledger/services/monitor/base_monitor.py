from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from partsledger.schemas.monitor.sweep_schema import SweepResult
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

# outcomes returned by evaluate()
UNCHANGED = "unchanged"
CREATED = "created"
RESOLVED = "resolved"
ESCALATED = "escalated"


class BaseMonitor(ABC):
    """Base class for periodic sweeps.

    Candidate ids are read up front; each entity is then loaded, decided and
    written in its own transaction so one failure never stops the sweep.
    """

    sweep_name = "monitor"

    def __init__(self, session: AsyncSession):
        self.session = session

    @abstractmethod
    async def candidate_ids(self, now: datetime) -> List[int]:
        """Ids of the entities this sweep should look at"""

    @abstractmethod
    async def evaluate(self, entity_id: int, now: datetime, result: SweepResult) -> str:
        """Decide and write for one entity; returns one of the outcome constants"""

    async def prepare(self, entity_ids: List[int], now: datetime) -> None:
        """Optional read-only preload, run once before the per-entity loop"""

    async def run(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utc_now()
        result = SweepResult(sweep=self.sweep_name, started_at=utc_now())

        entity_ids = await self.candidate_ids(now)
        await self.prepare(entity_ids, now)
        for entity_id in entity_ids:
            result.items_checked += 1
            try:
                outcome = await self.evaluate(entity_id, now, result)
                await self.session.commit()
            except IntegrityError:
                # another sweep opened the same alert first
                await self.session.rollback()
                result.skipped += 1
                logger.warning(f"{self.sweep_name} sweep: entity {entity_id} already handled concurrently")
                continue
            except Exception as e:
                await self.session.rollback()
                result.errors += 1
                logger.error(f"{self.sweep_name} sweep: failed on entity {entity_id}: {str(e)}")
                continue

            if outcome == CREATED:
                result.alerts_created += 1
            elif outcome == RESOLVED:
                result.alerts_resolved += 1
            elif outcome == ESCALATED:
                result.alerts_escalated += 1

        result.finished_at = utc_now()
        logger.info(
            f"🔎 {self.sweep_name} sweep: checked={result.items_checked} created={result.alerts_created} "
            f"resolved={result.alerts_resolved} escalated={result.alerts_escalated} "
            f"skipped={result.skipped} errors={result.errors}"
        )
        return result
