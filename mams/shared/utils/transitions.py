from collections.abc import Iterable
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession


async def claim_status(
    session: AsyncSession,
    model: type,
    record_id: int,
    expected: Iterable[str],
    values: dict[str, Any],
    *conditions: Any,
) -> bool:
    """Move a record out of one of the expected statuses in a single UPDATE.

    Returns False when another request changed the status first; the caller
    reloads the record and reports the state it actually found. Extra
    conditions narrow the WHERE clause further.
    """
    result = await session.execute(
        update(model)
        .where(model.id == record_id, model.status.in_(list(expected)), *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
