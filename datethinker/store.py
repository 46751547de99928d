# store.py
# Date-plan persistence (SQLAlchemy async). Thin CRUD, no business rules
# beyond sanitizing free text on the way in.

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from sqlalchemy import JSON, Column, Date, DateTime, String, Text, Time, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .errors import InvalidRequest, NotFound, StoreError
from .models import DatePlan, DatePlanCreate, Venue
from .utils import sanitize

log = logging.getLogger("datethinker.store")

Base = declarative_base()

TITLE_MAX = 200
NOTES_MAX = 2000


class DatePlanRecord(Base):
    __tablename__ = "date_plans"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=True, index=True)
    title = Column(String(TITLE_MAX), nullable=False)
    plan_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    notes = Column(Text, nullable=True)
    venues = Column(JSON, nullable=False, default=list)
    share_id = Column(String(36), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


def _to_plan(rec: DatePlanRecord) -> DatePlan:
    created = rec.created_at
    # sqlite hands back naive datetimes; they were written as UTC
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return DatePlan(
        id=rec.id,
        title=rec.title,
        venues=[Venue(**v) for v in rec.venues or []],
        createdAt=created,
        shareId=rec.share_id,
        userId=rec.user_id,
        date=rec.plan_date,
        startTime=rec.start_time,
        endTime=rec.end_time,
        notes=rec.notes,
    )


class DatePlanStore:
    def __init__(self, database_url: str):
        kwargs = {"future": True, "echo": False}
        if database_url.startswith("sqlite"):
            # no pooled connections: each request may run on its own event loop
            kwargs["poolclass"] = NullPool
        else:
            kwargs["pool_pre_ping"] = True
        self.engine = create_async_engine(database_url, **kwargs)
        self._sessions = async_sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._ready = False
        self._init_lock = asyncio.Lock()

    async def init(self) -> None:
        # concurrent first requests must not race create_all
        async with self._init_lock:
            if self._ready:
                return
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._ready = True

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            if not self._ready:
                await self.init()
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as e:
            log.error("store %s failed: %s", action, e)
            raise StoreError(str(e)) from e

    async def create_date_plan(self, payload: DatePlanCreate, user_id: Optional[str] = None) -> DatePlan:
        title = sanitize(payload.title, max_length=TITLE_MAX)
        if not title:
            raise InvalidRequest("Title is required")
        rec = DatePlanRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            plan_date=payload.date,
            start_time=payload.startTime,
            end_time=payload.endTime,
            notes=sanitize(payload.notes, max_length=NOTES_MAX) or None,
            venues=[v.model_dump(mode="json") for v in payload.venues],
            share_id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
        )
        async with self._session("create") as session:
            session.add(rec)
            await session.commit()
        log.info("created date plan %s (%d venues)", rec.id, len(payload.venues))
        return _to_plan(rec)

    async def get_date_plan(self, plan_id: str) -> DatePlan:
        async with self._session("get") as session:
            rec = await session.get(DatePlanRecord, plan_id)
        if rec is None:
            raise NotFound("Date plan not found")
        return _to_plan(rec)

    async def get_by_share_id(self, share_id: str) -> DatePlan:
        async with self._session("get_by_share_id") as session:
            res = await session.execute(select(DatePlanRecord).where(DatePlanRecord.share_id == share_id))
            rec = res.scalar_one_or_none()
        if rec is None:
            raise NotFound("Shared date plan not found")
        return _to_plan(rec)

    async def list_date_plans(self, user_id: str) -> List[DatePlan]:
        async with self._session("list") as session:
            res = await session.execute(
                select(DatePlanRecord)
                .where(DatePlanRecord.user_id == user_id)
                .order_by(DatePlanRecord.created_at.desc())
            )
            recs = res.scalars().all()
        return [_to_plan(r) for r in recs]

    async def delete_date_plan(self, plan_id: str, user_id: Optional[str] = None) -> None:
        """Delete one plan; scoped to its owner when user_id is given."""
        stmt = delete(DatePlanRecord).where(DatePlanRecord.id == plan_id)
        if user_id is not None:
            stmt = stmt.where(DatePlanRecord.user_id == user_id)
        async with self._session("delete") as session:
            res = await session.execute(stmt)
            await session.commit()
        if not res.rowcount:
            raise NotFound("Date plan not found")
        log.info("deleted date plan %s", plan_id)
