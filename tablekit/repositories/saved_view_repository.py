# tablekit/repositories/saved_view_repository.py
# Repository for saved view CRUD operations

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select, update

from tablekit.db.base import get_session
from tablekit.models.saved_views_table import saved_views


def _generate_view_id() -> str:
    return uuid.uuid4().hex


_COLUMNS = (
    saved_views.c.id,
    saved_views.c.table_key,
    saved_views.c.name,
    saved_views.c.description,
    saved_views.c.state,
    saved_views.c.updated_at,
)


class SavedViewRepository:
    """Repository for saved view persistence. Rows come back as plain dicts."""

    async def list_views(self, table_key: str) -> list[dict[str, Any]]:
        """Views for one table, most recently updated first."""
        stmt = (
            select(*_COLUMNS)
            .where(saved_views.c.table_key == table_key)
            .order_by(saved_views.c.updated_at.desc())
        )
        async with get_session() as session:
            result = await session.execute(stmt)
            return [dict(r) for r in result.mappings().all()]

    async def create(
        self,
        table_key: str,
        name: str,
        description: Optional[str],
        state: dict[str, Any],
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        values = {
            "id": _generate_view_id(),
            "table_key": table_key,
            "name": name,
            "description": description,
            "state": state,
            "created_at": now,
            "updated_at": now,
        }
        async with get_session() as session:
            await session.execute(saved_views.insert().values(**values))
            await session.commit()
        values.pop("created_at")
        return values

    async def update(
        self,
        view_id: str,
        table_key: str,
        name: str,
        description: Optional[str],
        state: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """Update in place, keeping the id. Returns None if the view is missing."""
        stmt = (
            update(saved_views)
            .where(saved_views.c.id == view_id, saved_views.c.table_key == table_key)
            .values(name=name, description=description, state=state, updated_at=datetime.now(timezone.utc))
            .returning(*_COLUMNS)
        )
        async with get_session() as session:
            result = await session.execute(stmt)
            row = result.mappings().fetchone()
            await session.commit()
        return dict(row) if row else None

    async def delete(self, view_id: str) -> bool:
        async with get_session() as session:
            result = await session.execute(delete(saved_views).where(saved_views.c.id == view_id))
            await session.commit()
        return result.rowcount > 0
