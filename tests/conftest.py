# tests/conftest.py
# Shared fixtures: an in-memory stand-in for the saved-view repository

from datetime import datetime, timedelta, timezone

import pytest


class InMemoryViewStore:
    """Stand-in for SavedViewRepository."""

    def __init__(self):
        self.rows = {}
        self._ids = 0
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.fail = False

    def _tick(self):
        self._clock += timedelta(minutes=1)
        return self._clock

    def _check(self):
        if self.fail:
            raise ConnectionError("database is down")

    async def list_views(self, table_key):
        self._check()
        rows = [dict(r) for r in self.rows.values() if r["table_key"] == table_key]
        return sorted(rows, key=lambda r: r["updated_at"], reverse=True)

    async def create(self, table_key, name, description, state):
        self._check()
        self._ids += 1
        row = {
            "id": f"v{self._ids}",
            "table_key": table_key,
            "name": name,
            "description": description,
            "state": state,
            "updated_at": self._tick(),
        }
        self.rows[row["id"]] = row
        return dict(row)

    async def update(self, view_id, table_key, name, description, state):
        self._check()
        row = self.rows.get(view_id)
        if row is None or row["table_key"] != table_key:
            return None
        row.update(name=name, description=description, state=state, updated_at=self._tick())
        return dict(row)

    async def delete(self, view_id):
        self._check()
        return self.rows.pop(view_id, None) is not None


@pytest.fixture
def store():
    return InMemoryViewStore()

