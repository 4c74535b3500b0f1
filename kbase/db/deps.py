"""
Database Dependencies for FastAPI Routes

Every request gets its own AsyncSession from the session factory stored on
``app.state`` by the lifespan. Routes call ``await db.commit()`` once the
service call succeeded; anything that escapes the route rolls back.

Best-effort sub-steps (attaching a tag, writing a metadata row, one stage of
an account cleanup) run inside ``BestEffortStep``, a SAVEPOINT that is
rolled back and logged on failure while the surrounding transaction carries
on.

Learning Resources:
- FastAPI Dependencies: https://fastapi.tiangolo.com/tutorial/dependencies/
- Savepoints: https://docs.sqlalchemy.org/en/20/orm/session_transaction.html#using-savepoint
"""

from collections.abc import AsyncGenerator
from typing import Annotated, Any, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from kbase.core.logging import get_logger

logger = get_logger(__name__)


# ================================
# Database Session Dependency
# ================================

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a request-scoped session.

    Usage in Routes:
    ----------------
    @router.get("/content/{content_id}")
    async def get_content(content_id: int, db: DBSession):
        ...

    Yields:
        AsyncSession: Database session for the current request
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "database_session_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            await session.rollback()
            raise


DBSession = Annotated[AsyncSession, Depends(get_db)]


# ================================
# Testing Helpers
# ================================

def get_db_override(session: AsyncSession) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Dependency override that hands every request the same session.

    Usage in Tests:
    ---------------
    app.dependency_overrides[get_db] = get_db_override(db_session)
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

    return _override


# ================================
# Savepoint-Isolated Steps
# ================================

class BestEffortStep:
    """
    Run a block inside a SAVEPOINT; on failure roll back only that block.

    The exception is logged and suppressed, and ``failed`` is set so the
    caller can report which steps did not complete.

    Usage:
    ------
    async with BestEffortStep(db, "attach_tag", content_id=content.id) as step:
        await tags.attach(content.id, tag_id)
    if step.failed:
        ...
    """

    def __init__(self, session: AsyncSession, step: str, **context: Any):
        self.session = session
        self.step = step
        self.context = context
        self.failed = False
        self.error: Optional[BaseException] = None
        self._transaction: Optional[AsyncSessionTransaction] = None

    async def __aenter__(self) -> "BestEffortStep":
        self._transaction = await self.session.begin_nested()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            await self._transaction.commit()
            return False

        await self._transaction.rollback()

        # Cancellation and interpreter exits still propagate
        if not issubclass(exc_type, Exception):
            return False

        self.failed = True
        self.error = exc_val
        logger.warning(
            "best_effort_step_failed",
            step=self.step,
            error=str(exc_val),
            error_type=exc_type.__name__,
            **self.context,
        )
        return True


__all__ = [
    "get_db",
    "DBSession",
    "get_db_override",
    "BestEffortStep",
]
