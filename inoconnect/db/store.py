"""
Set-membership mutations over association tables.

Membership lists (connections, followers, project members, applicants, chat
participants) are rows in set tables keyed by the pair. Adding is an
``INSERT ... ON CONFLICT DO NOTHING`` and removing is a ``DELETE``, so
concurrent or repeated callers converge on the same rows. Both helpers report
whether the row actually changed; callers gate counters and notifications on
that flag so retries stay idempotent.
"""
from typing import Any, List

from sqlalchemy import Table, and_, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def _dialect_insert(db: AsyncSession, table: Table):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Set mutations are not supported on dialect {dialect!r}")


async def insert_ignore(db: AsyncSession, table: Table, **values: Any) -> bool:
    """
    Insert a row unless it would violate a unique or primary key constraint.

    Returns:
        bool: True if a row was inserted
    """
    stmt = _dialect_insert(db, table).values(**values).on_conflict_do_nothing()
    result = await db.execute(stmt)
    return result.rowcount == 1


async def add_to_set(db: AsyncSession, table: Table, **key: Any) -> bool:
    """Add a member to a set table. Returns True if it was not already present."""
    return await insert_ignore(db, table, **key)


async def remove_from_set(db: AsyncSession, table: Table, **key: Any) -> bool:
    """Remove a member from a set table. Returns True if it was present."""
    clauses = [table.c[name] == value for name, value in key.items()]
    result = await db.execute(delete(table).where(and_(*clauses)))
    return result.rowcount > 0


async def is_member(db: AsyncSession, table: Table, **key: Any) -> bool:
    return await count_members(db, table, **key) > 0


async def set_members(db: AsyncSession, table: Table, member_column: str, order_by=None, **scope: Any) -> List[str]:
    """List the member ids of a set, optionally ordered."""
    clauses = [table.c[name] == value for name, value in scope.items()]
    stmt = select(table.c[member_column]).where(and_(*clauses))
    if order_by is not None:
        stmt = stmt.order_by(order_by)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_members(db: AsyncSession, table: Table, **scope: Any) -> int:
    clauses = [table.c[name] == value for name, value in scope.items()]
    result = await db.execute(select(func.count()).select_from(table).where(and_(*clauses)))
    return result.scalar_one()


async def increment(db: AsyncSession, model, row_id: str, column: str, amount: int = 1) -> None:
    """Atomically add ``amount`` to a counter column (server-side arithmetic)."""
    target = getattr(model, column)
    await db.execute(
        update(model)
        .where(model.id == row_id)
        .values({column: target + amount})
        .execution_options(synchronize_session=False)
    )
