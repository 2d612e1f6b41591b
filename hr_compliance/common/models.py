"""Common ORM models: AppSetting."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from hr_compliance.database import Base


class AppSetting(Base):
    """Key/value configuration row (JSON value), e.g. the time-clock settings."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(sa.String(100), primary_key=True)
    value: Mapped[dict] = mapped_column(JSONB, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


async def get_setting(session: AsyncSession, key: str) -> Optional[dict[str, Any]]:
    """Return the stored JSON value for *key*, or None."""
    row = await session.get(AppSetting, key)
    return dict(row.value) if row is not None else None


async def put_setting(
    session: AsyncSession,
    key: str,
    value: dict[str, Any],
    *,
    description: Optional[str] = None,
) -> AppSetting:
    """Insert or replace the JSON value stored under *key*."""
    row = await session.get(AppSetting, key)
    if row is None:
        row = AppSetting(key=key, value=value, description=description)
        session.add(row)
    else:
        row.value = value
        if description is not None:
            row.description = description
    await session.flush()
    return row
