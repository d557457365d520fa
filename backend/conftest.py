import sys
from pathlib import Path

import pytest


# Ensure backend/src is on sys.path for tests so that imports like `services.*` work.
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class FakeSupabase:
    """In-memory stand-in for SupabaseClient over a dict of tables."""

    _OPS = {
        "eq": lambda a, b: a == b,
        "gte": lambda a, b: a is not None and a >= b,
        "lte": lambda a, b: a is not None and a <= b,
        "in": lambda a, b: a in b,
    }

    def __init__(self, tables):
        self.tables = tables
        self.calls = []
        self._next_id = 1

    def select(self, table, *, columns="*", filters=(), order=(), limit=None):
        self.calls.append({"table": table, "columns": columns, "filters": list(filters), "order": list(order), "limit": limit})
        rows = [row for row in self.tables.get(table, []) if self._matches(row, filters)]
        for clause in reversed(order):
            col, _, direction = clause.partition(".")
            rows.sort(key=lambda r: r.get(col), reverse=direction == "desc")
        return rows[:limit] if limit is not None else rows

    def _matches(self, row, filters):
        return all(self._OPS[op](row.get(col), value) for col, op, value in filters)

    def insert(self, table, row):
        self.calls.append({"table": table, "op": "insert", "row": dict(row)})
        stored = dict(row)
        if "id" not in stored:
            stored["id"] = f"{table}-{self._next_id}"
            self._next_id += 1
        self.tables.setdefault(table, []).append(stored)
        return [dict(stored)]

    def upsert(self, table, row, *, on_conflict):
        self.calls.append({"table": table, "op": "upsert", "row": dict(row), "on_conflict": on_conflict})
        keys = on_conflict.split(",")
        for existing in self.tables.setdefault(table, []):
            if all(existing.get(k) == row.get(k) for k in keys):
                existing.update(row)
                return [dict(existing)]
        stored = dict(row)
        stored.setdefault("id", f"{table}-{self._next_id}")
        self._next_id += 1
        self.tables[table].append(stored)
        return [dict(stored)]

    def update(self, table, values, *, filters):
        self.calls.append({"table": table, "op": "update", "values": dict(values), "filters": list(filters)})
        changed = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(values)
                changed.append(dict(row))
        return changed

    def delete(self, table, *, filters):
        self.calls.append({"table": table, "op": "delete", "filters": list(filters)})
        rows = self.tables.get(table, [])
        removed = [row for row in rows if self._matches(row, filters)]
        self.tables[table] = [row for row in rows if not self._matches(row, filters)]
        return removed


@pytest.fixture
def fake_supabase():
    return FakeSupabase
