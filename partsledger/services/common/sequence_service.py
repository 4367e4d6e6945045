import re
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from partsledger.models.system.sequence_counter import SequenceCounter


class SequenceService:
    """Hands out per-scope sequence numbers inside the caller's transaction.

    The counter row is locked and incremented in the same transaction that
    inserts the numbered document, so two creators never share a number.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_value(self, scope: str) -> int:
        result = await self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.scope == scope)
            .with_for_update()
        )
        counter = result.scalar_one_or_none()
        if counter is None:
            counter = SequenceCounter(scope=scope, last_value=0)
            self.session.add(counter)

        counter.last_value = (counter.last_value or 0) + 1
        await self.session.flush()
        return counter.last_value


def product_code(product_name: str) -> str:
    """First two alphanumeric characters of a product name, upper-cased"""
    letters = re.sub(r"[^A-Za-z0-9]", "", product_name or "")
    return (letters[:2] or "XX").upper()
