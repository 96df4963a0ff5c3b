import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from ..core.errors import StoreError
from ..schemas.queries import FarmerSearchQuery, GrantSearchQuery

Row = Dict[str, Any]


def _contains(term: str) -> str:
    """ILIKE pattern matching `term` anywhere, with LIKE wildcards escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# -------------------------
# FILTER BUILDERS
# -------------------------
# Count and page queries for a path must share the same builder.

def farmer_filters(query: FarmerSearchQuery) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []

    if query.q:
        clauses.append("(name ILIKE %s OR email ILIKE %s)")
        params.extend([_contains(query.q)] * 2)

    if query.location:
        clauses.append("farm_location ILIKE %s")
        params.append(_contains(query.location))

    if query.crop_type:
        clauses.append("crop_types::text ILIKE %s")
        params.append(_contains(query.crop_type))

    if query.farm_size:
        clauses.append("farm_size::text = %s")
        params.append(query.farm_size)

    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


def grant_filters(query: GrantSearchQuery) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []

    if query.q:
        clauses.append("(ga.purpose ILIKE %s OR f.name ILIKE %s)")
        params.extend([_contains(query.q)] * 2)

    if query.grant_type:
        clauses.append("ga.grant_type = %s")
        params.append(query.grant_type)

    if query.status:
        clauses.append("ga.status = %s")
        params.append(query.status.value)

    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


GRANT_FROM = (
    " FROM grant_applications ga"
    " JOIN farmers f ON ga.farmer_id = f.id"
)

# crop_types holds a JSON-encoded array (text or jsonb); blank and NULL yield no labels
CROP_LABELS = "jsonb_array_elements_text(NULLIF(crop_types::text, '')::jsonb)"


# -------------------------
# PRIMARY STORE
# -------------------------

class PrimaryStore:
    """
    Read-only accessor for the farmers / grant_applications tables.

    Usage:
        store = PrimaryStore(DATABASE_URL)
        rows = store.query("SELECT * FROM farmers WHERE id = %s", [1])
        store.close()

    All methods are blocking; async callers run them in the threadpool.
    """

    def __init__(self, dsn: str, min_connections: int = 1, max_connections: int = 10):
        try:
            self._pool = ThreadedConnectionPool(min_connections, max_connections, dsn)
        except psycopg2.Error as e:
            raise StoreError(f"Could not connect to primary store: {e}") from e

        logging.info(f"[PrimaryStore] Pool ready ({min_connections}-{max_connections} connections)")

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Row]:
        try:
            with self._connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(sql, params or [])
                    return [dict(row) for row in cursor.fetchall()]
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def ping(self) -> bool:
        self.query("SELECT 1")
        return True

    def close(self):
        self._pool.closeall()
        logging.info("[PrimaryStore] Pool closed")

    # -------------------------
    # FARMERS
    # -------------------------
    def count_farmers(self, query: FarmerSearchQuery) -> int:
        where, params = farmer_filters(query)
        rows = self.query("SELECT COUNT(*) AS total FROM farmers" + where, params)
        return int(rows[0]["total"])

    def find_farmers(self, query: FarmerSearchQuery) -> List[Row]:
        where, params = farmer_filters(query)
        sql = (
            "SELECT * FROM farmers" + where
            + " ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s"
        )
        return self.query(sql, params + [query.limit, query.offset])

    def fetch_all_farmers(self) -> List[Row]:
        return self.query("SELECT * FROM farmers ORDER BY id")

    # -------------------------
    # GRANT APPLICATIONS
    # -------------------------
    def count_grants(self, query: GrantSearchQuery) -> int:
        where, params = grant_filters(query)
        rows = self.query("SELECT COUNT(*) AS total" + GRANT_FROM + where, params)
        return int(rows[0]["total"])

    def find_grants(self, query: GrantSearchQuery) -> List[Row]:
        where, params = grant_filters(query)
        sql = (
            "SELECT ga.*, f.name AS farmer_name, f.email AS farmer_email"
            + GRANT_FROM + where
            + " ORDER BY ga.created_at DESC, ga.id DESC LIMIT %s OFFSET %s"
        )
        return self.query(sql, params + [query.limit, query.offset])

    # -------------------------
    # DISTINCT VALUE LOOKUPS (suggestions)
    # -------------------------
    def distinct_locations(self, term: str, limit: int) -> List[str]:
        rows = self.query(
            "SELECT DISTINCT farm_location AS value FROM farmers"
            " WHERE farm_location ILIKE %s ORDER BY value LIMIT %s",
            [_contains(term), limit],
        )
        return [row["value"] for row in rows]

    def distinct_crops(self, term: str, limit: int) -> List[str]:
        rows = self.query(
            "SELECT DISTINCT crop AS value FROM farmers, " + CROP_LABELS + " AS crop"
            " WHERE crop ILIKE %s ORDER BY value LIMIT %s",
            [_contains(term), limit],
        )
        return [row["value"] for row in rows]

    def distinct_names(self, term: str, limit: int) -> List[str]:
        rows = self.query(
            "SELECT DISTINCT name AS value FROM farmers"
            " WHERE name ILIKE %s ORDER BY value LIMIT %s",
            [_contains(term), limit],
        )
        return [row["value"] for row in rows]
