"""In-memory backend.

Process-local tables and buckets implementing the backend contract,
with a fault injector for exercising partial-failure paths.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import structlog

from catalog_admin.infrastructure.backend import (
    Backend,
    BackendClientError,
    Filter,
    Row,
    require_filters,
)

logger = structlog.get_logger()


# ============================================================================
# Fault Injection
# ============================================================================


@dataclass
class Operation:
    """A backend call recorded by the in-memory backend."""

    kind: str
    resource: str
    key: Any = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class FaultInjector:
    """Configured failures for the in-memory backend.

    Uploads fail by exact storage key; table operations fail when
    the table matches and the predicate accepts the row.
    """

    upload_keys: set[str] = field(default_factory=set)
    insert_rules: list[tuple[str, Callable[[Row], bool]]] = field(default_factory=list)
    query_tables: set[str] = field(default_factory=set)
    remove_buckets: set[str] = field(default_factory=set)
    upload_crashes: dict[str, Exception] = field(default_factory=dict)
    insert_crashes: list[tuple[str, Exception]] = field(default_factory=list)

    def fail_upload(self, key: str) -> None:
        """Make uploads to this key fail."""
        self.upload_keys.add(key)

    def fail_insert(self, table: str, **match: Any) -> None:
        """Make inserts into table fail for rows with the given column values."""
        self.insert_rules.append(
            (table, lambda row: all(row.get(k) == v for k, v in match.items()))
        )

    def fail_query(self, table: str) -> None:
        """Make every query against table fail."""
        self.query_tables.add(table)

    def fail_remove(self, bucket: str) -> None:
        """Make object removal from bucket fail."""
        self.remove_buckets.add(bucket)

    def crash_upload(self, key: str, error: Exception) -> None:
        """Make uploads to this key raise error instead of a backend failure."""
        self.upload_crashes[key] = error

    def crash_insert(self, table: str, error: Exception) -> None:
        """Make every insert into table raise error."""
        self.insert_crashes.append((table, error))

    def should_fail_insert(self, table: str, row: Row) -> bool:
        return any(t == table and predicate(row) for t, predicate in self.insert_rules)

    def reset(self) -> None:
        """Clear all configured failures."""
        self.upload_keys.clear()
        self.insert_rules.clear()
        self.query_tables.clear()
        self.remove_buckets.clear()
        self.upload_crashes.clear()
        self.insert_crashes.clear()


# ============================================================================
# Select Parsing
# ============================================================================


def parse_select(select: str) -> tuple[list[str], dict[str, list[str]]]:
    """Split a select string into plain columns and embedded relations.

    "id, title, products(category, subcategory)" becomes
    (["id", "title"], {"products": ["category", "subcategory"]}).
    """
    columns: list[str] = []
    embeds: dict[str, list[str]] = {}
    depth = 0
    token = ""
    for char in select + ",":
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            token = token.strip()
            if "(" in token:
                name, inner = token.split("(", 1)
                embeds[name.strip()] = [
                    c.strip() for c in inner.rstrip(")").split(",") if c.strip()
                ]
            elif token:
                columns.append(token)
            token = ""
        else:
            token += char
    if depth != 0:
        raise ValueError(f"Unbalanced select: {select}")
    return columns, embeds


def _project(row: Row, columns: list[str]) -> Row:
    if not columns or "*" in columns:
        return dict(row)
    return {c: row.get(c) for c in columns}


def _matches(row: Row, filters: list[Filter] | tuple[Filter, ...]) -> bool:
    for field_name, op, value in filters:
        actual = row.get(field_name)
        if op in ("eq", "is"):
            if actual != value:
                return False
        elif op == "neq":
            if actual == value:
                return False
        elif actual is None or value is None:
            return False
        elif op == "gt" and not actual > value:
            return False
        elif op == "gte" and not actual >= value:
            return False
        elif op == "lt" and not actual < value:
            return False
        elif op == "lte" and not actual <= value:
            return False
    return True


# ============================================================================
# In-Memory Backend
# ============================================================================


class InMemoryBackend(Backend):
    """Backend keeping tables and buckets in process memory.

    Embedded selects are resolved through ``relations``, a mapping of
    (table, related_table) to the foreign key column on ``table``.
    """

    def __init__(
        self,
        relations: dict[tuple[str, str], str] | None = None,
        base_url: str = "memory://backend",
    ) -> None:
        self.relations = relations or {}
        self.base_url = base_url
        self.tables: dict[str, list[Row]] = {}
        self.buckets: dict[str, dict[str, tuple[bytes, str]]] = {}
        self.faults = FaultInjector()
        self.operations: list[Operation] = []
        self._sequences: dict[str, int] = {}

    def _record(self, kind: str, resource: str, key: Any = None) -> None:
        self.operations.append(Operation(kind=kind, resource=resource, key=key))

    def count(self, kind: str, resource: str | None = None) -> int:
        """Number of recorded calls of a kind, optionally for one table or bucket."""
        return sum(
            1
            for op in self.operations
            if op.kind == kind and (resource is None or op.resource == resource)
        )

    def seed(self, table: str, rows: list[Row]) -> list[Row]:
        """Insert rows directly, bypassing faults and the operation log."""
        return [self._store(table, row) for row in rows]

    def _store(self, table: str, row: Row) -> Row:
        rows = self.tables.setdefault(table, [])
        stored = copy.deepcopy(row)
        if stored.get("id") is None:
            self._sequences[table] = self._sequences.get(table, 0) + 1
            stored["id"] = self._sequences[table]
        else:
            if any(r["id"] == stored["id"] for r in rows):
                raise BackendClientError(
                    table, f"duplicate key value violates unique constraint: id={stored['id']}", 409
                )
            if isinstance(stored["id"], int):
                self._sequences[table] = max(self._sequences.get(table, 0), stored["id"])
        rows.append(stored)
        return copy.deepcopy(stored)

    def _embed(
        self, table: str, source: Row, row: Row, embeds: dict[str, list[str]]
    ) -> Row:
        for related, columns in embeds.items():
            fk = self.relations.get((table, related))
            if fk is None:
                raise BackendClientError(
                    table, f"Could not find a relationship between '{table}' and '{related}'", 400
                )
            target = next(
                (r for r in self.tables.get(related, []) if r.get("id") == source.get(fk)),
                None,
            )
            row[related] = _project(target, columns) if target else None
        return row

    async def query(
        self,
        table: str,
        filters: list[Filter] | tuple[Filter, ...] = (),
        select: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        self._record("query", table)
        if table in self.faults.query_tables:
            raise BackendClientError(table, "Injected query failure", 500)

        columns, embeds = parse_select(select)
        rows = [r for r in self.tables.get(table, []) if _matches(r, filters)]

        if order:
            column, _, direction = order.partition(".")
            rows = sorted(
                rows,
                key=lambda r: (r.get(column) is None, r.get(column)),
                reverse=direction == "desc",
            )
        if limit is not None:
            rows = rows[:limit]

        return [
            self._embed(table, r, _project(r, columns), embeds)
            for r in copy.deepcopy(rows)
        ]

    async def insert(self, table: str, row: Row) -> Row:
        self._record("insert", table, row.get("title") or row.get("name"))
        for crash_table, error in self.faults.insert_crashes:
            if crash_table == table:
                raise error
        if self.faults.should_fail_insert(table, row):
            raise BackendClientError(table, "Injected insert failure", 500)
        return self._store(table, row)

    async def update(
        self, table: str, filters: list[Filter], patch: Row
    ) -> list[Row]:
        self._record("update", table)
        require_filters(table, filters)
        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        self._record("delete", table)
        require_filters(table, filters)
        rows = self.tables.get(table, [])
        removed = [r for r in rows if _matches(r, filters)]
        self.tables[table] = [r for r in rows if not _matches(r, filters)]
        return removed

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        self._record("upload", bucket, key)
        if key in self.faults.upload_crashes:
            raise self.faults.upload_crashes[key]
        if key in self.faults.upload_keys:
            raise BackendClientError(bucket, f"Injected upload failure: {key}", 500)
        objects = self.buckets.setdefault(bucket, {})
        if key in objects and not upsert:
            raise BackendClientError(bucket, "The resource already exists", 409)
        objects[key] = (data, content_type or "application/octet-stream")
        return key

    async def remove(self, bucket: str, keys: list[str]) -> None:
        self._record("remove", bucket, tuple(keys))
        if bucket in self.faults.remove_buckets:
            raise BackendClientError(bucket, "Injected remove failure", 500)
        objects = self.buckets.get(bucket, {})
        for key in keys:
            objects.pop(key, None)

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{key}"

    def reset(self) -> None:
        """Drop all data, faults and recorded operations."""
        self.tables.clear()
        self.buckets.clear()
        self.operations.clear()
        self._sequences.clear()
        self.faults.reset()
        logger.info("In-memory backend reset")
