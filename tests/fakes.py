"""In-memory stand-in for the parts of the Supabase client the services use.

Tables are lists of dicts. Query builders record filters and apply them on
execute(); select projections are ignored (whole rows come back).
"""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace


def _now():
    return datetime.now(timezone.utc).isoformat()


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.on_conflict = None
        self.count_mode = None
        self.filters = []
        self.ordering = []
        self.limit_n = None
        self.range_bounds = None

    # Actions

    def select(self, columns="*", count=None):
        self.action = "select"
        self.count_mode = count
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def upsert(self, data, on_conflict=None, **kwargs):
        self.action, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and str(row.get(column)) >= value)
        return self

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def range(self, start, end):
        self.range_bounds = (start, end)
        return self

    # Execution

    def _rows(self):
        return self.db.tables.setdefault(self.table, [])

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def _new_row(self, data):
        row = {"id": str(uuid.uuid4()), "created_at": _now(), **data}
        self._rows().append(row)
        return dict(row)

    def execute(self):
        error = self.db.errors.get((self.table, self.action))
        if error is not None:
            raise error

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([self._new_row(item) for item in items])

        if self.action == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = (self.on_conflict or "id").split(",")
            out = []
            for item in items:
                existing = next(
                    (r for r in self._rows() if all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is not None:
                    existing.update(item)
                    out.append(dict(existing))
                else:
                    out.append(self._new_row(item))
            return FakeResponse(out)

        matched = [r for r in self._rows() if self._matches(r)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.action == "delete":
            self.db.tables[self.table] = [r for r in self._rows() if not self._matches(r)]
            return FakeResponse([dict(r) for r in matched])

        rows = [dict(r) for r in matched]
        for column, desc in reversed(self.ordering):
            rows.sort(key=lambda r: (r.get(column) is None, str(r.get(column) or "")), reverse=desc)
        count = len(rows) if self.count_mode else None
        if self.range_bounds is not None:
            start, end = self.range_bounds
            rows = rows[start:end + 1]
        if self.limit_n is not None:
            rows = rows[:self.limit_n]
        return FakeResponse(rows, count=count)


class FakeAuthAdmin:
    def __init__(self, db):
        self.db = db
        self.users = {}
        self.deleted = []

    def create_user(self, attributes):
        email = attributes["email"]
        if any(u.email == email for u in self.users.values()):
            raise Exception("A user with this email address has already been registered")
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=attributes.get("user_metadata", {}),
            app_metadata={},
        )
        self.users[user.id] = user
        return SimpleNamespace(user=user)

    def update_user_by_id(self, user_id, attributes):
        user = self.users.get(user_id)
        if user is None:
            raise Exception("User not found")
        user.password = attributes.get("password")
        return SimpleNamespace(user=user)

    def delete_user(self, user_id):
        self.users.pop(user_id, None)
        self.deleted.append(user_id)


class FakeAuth:
    def __init__(self, db):
        self.admin = FakeAuthAdmin(db)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        # (table, action) -> exception raised on execute()
        self.errors = {}
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, *rows):
        """Insert rows directly and return them (ids filled in)."""
        return [FakeQuery(self, table)._new_row(row) for row in rows]

    def rows(self, table):
        return self.tables.get(table, [])
