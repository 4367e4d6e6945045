import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from partsledger.core.exceptions import ConcurrentUpdateError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    action: str,
    entity: str = "Record",
    entity_id: Any = None,
) -> AsyncIterator[AsyncSession]:
    """Run one service operation as a single transaction.

    Commits when the block finishes; rolls back on any error. Domain errors
    pass through unchanged, lost races become ``ConcurrentUpdateError`` and
    anything else is logged and reported as a 500.
    """
    try:
        yield session
        await session.commit()
    except HTTPException:
        await session.rollback()
        raise
    except (StaleDataError, IntegrityError) as e:
        await session.rollback()
        logger.warning(f"Concurrent update during {action} on {entity} {entity_id}: {str(e)}")
        raise ConcurrentUpdateError(entity, entity_id)
    except Exception as e:
        await session.rollback()
        logger.error(f"Error during {action} on {entity} {entity_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}"
        )
