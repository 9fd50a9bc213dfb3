"""Shop-scoped queries over generated reports.

Every statement built here filters on ``shop_id`` so a report owned by
another shop behaves exactly like one that does not exist.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Report


HISTORY_LIMIT = 100


@dataclass(frozen=True)
class HistoryFilters:
    make: Optional[str] = None
    model: Optional[str] = None
    code: Optional[str] = None
    q: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None


def build_history_query(
    shop_id: uuid.UUID,
    user_id: Optional[uuid.UUID] = None,
    filters: Optional[HistoryFilters] = None,
) -> Select:
    stmt = select(Report).where(Report.shop_id == shop_id)
    if user_id is not None:
        stmt = stmt.where(Report.user_id == user_id)
    if filters is not None:
        if filters.make:
            stmt = stmt.where(Report.vehicle_make == filters.make)
        if filters.model:
            stmt = stmt.where(Report.vehicle_model == filters.model)
        if filters.code:
            stmt = stmt.where(Report.codes_raw.icontains(filters.code.strip(), autoescape=True))
        if filters.q:
            stmt = stmt.where(Report.complaint.icontains(filters.q.strip(), autoescape=True))
        if filters.created_from is not None:
            stmt = stmt.where(Report.created_at >= filters.created_from)
        if filters.created_to is not None:
            stmt = stmt.where(Report.created_at <= filters.created_to)
    return stmt.order_by(Report.created_at.desc()).limit(HISTORY_LIMIT)


async def list_reports(
    db: AsyncSession,
    shop_id: uuid.UUID,
    user_id: Optional[uuid.UUID] = None,
    filters: Optional[HistoryFilters] = None,
) -> list[Report]:
    """Return up to 100 of the shop's reports, newest first."""
    result = await db.execute(build_history_query(shop_id, user_id, filters))
    return list(result.scalars().all())


async def get_report(db: AsyncSession, shop_id: uuid.UUID, report_id: uuid.UUID) -> Optional[Report]:
    result = await db.execute(
        select(Report).where(Report.id == report_id, Report.shop_id == shop_id)
    )
    return result.scalar_one_or_none()


async def delete_report(db: AsyncSession, shop_id: uuid.UUID, report_id: uuid.UUID) -> bool:
    """Delete one of the shop's reports.  Returns ``False`` if there was none."""
    if await get_report(db, shop_id, report_id) is None:
        return False
    await db.execute(delete(Report).where(Report.id == report_id, Report.shop_id == shop_id))
    await db.commit()
    return True
