import copy
import itertools
import re

import pytest
from postgrest.exceptions import APIError

from menusync.models import MenuItem, NutritionalData


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _like(pattern, value):
    rx = ".*".join(re.escape(part) for part in pattern.split("%"))
    return re.fullmatch(rx, str(value or ""), re.I | re.S) is not None


class FakeQuery:
    """Enough of the PostgREST builder chain for the jobs and the read API."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.count = None
        self.payload = None
        self.filters = []
        self.orders = []
        self.bounds = None
        self.max_rows = None

    def select(self, columns="*", count=None):
        self.columns = columns
        self.count = count
        return self

    def insert(self, rows):
        self.op, self.payload = "insert", rows
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def _filter(self, kind, col, value):
        self.filters.append((kind, col, value))
        return self

    def eq(self, col, value):
        return self._filter("eq", col, value)

    def ilike(self, col, value):
        return self._filter("ilike", col, value)

    def in_(self, col, values):
        return self._filter("in", col, list(values))

    def lte(self, col, value):
        return self._filter("lte", col, value)

    def gte(self, col, value):
        return self._filter("gte", col, value)

    def order(self, col, desc=False):
        self.orders.append((col, desc))
        return self

    def range(self, start, end):
        self.bounds = (start, end)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matches(self, row):
        for kind, col, value in self.filters:
            # embedded-resource filters are recorded, not evaluated
            if "." in col:
                continue
            have = row.get(col)
            if kind == "eq" and have != value:
                return False
            if kind == "ilike" and not _like(value, have):
                return False
            if kind == "in" and have not in value:
                return False
            if kind == "lte" and (have is None or have > value):
                return False
            if kind == "gte" and (have is None or have < value):
                return False
        return True

    def execute(self):
        self.client.queries.append(self)
        if self.table in self.client.raise_on:
            raise RuntimeError(f"{self.table} unavailable")
        rows = self.client.tables.setdefault(self.table, [])
        if self.op != "select" and self.table in self.client.write_errors:
            raise APIError({"message": self.client.write_errors[self.table], "code": "42501", "hint": None, "details": None})
        if self.op == "insert":
            new = self.payload if isinstance(self.payload, list) else [self.payload]
            out = []
            for row in new:
                row = dict(row)
                row.setdefault("id", f"{self.table}-{next(self.client.ids)}")
                rows.append(row)
                out.append(copy.deepcopy(row))
            return FakeResponse(out)
        matched = [r for r in rows if self._matches(r)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse(copy.deepcopy(matched))
        if self.op == "delete":
            self.client.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResponse(copy.deepcopy(matched))
        for col, desc in reversed(self.orders):
            if "(" not in col and "." not in col:
                matched = sorted(matched, key=lambda r: (r.get(col) is None, r.get(col)), reverse=desc)
        total = len(matched)
        if self.bounds:
            matched = matched[self.bounds[0]:self.bounds[1] + 1]
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        return FakeResponse(copy.deepcopy(matched), count=total if self.count else None)


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.queries = []
        self.raise_on = set()
        self.write_errors = {}
        self.ids = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])


@pytest.fixture
def fake_sb():
    return FakeSupabase()


@pytest.fixture
def make_item():
    counter = itertools.count(1)

    def _make(name, category="entree", description="", park="Magic Kingdom", restaurant="Cosmic Ray's", is_fried=False, **nutrition):
        n = next(counter)
        nd = NutritionalData(id=f"nd-{n}", menu_item_id=f"mi-{n}", **nutrition) if nutrition else None
        return MenuItem(
            id=f"mi-{n}",
            name=name,
            restaurant_id="r-1",
            description=description,
            category=category,
            is_fried=is_fried,
            restaurant_name=restaurant,
            park_name=park,
            nutrition=nd,
        )

    return _make
