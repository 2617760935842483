import math
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable

from psycopg import Error as PsycopgError

from fintrack.core.errors import StorageError
from fintrack.db.pool import db_conn

ASSET_FROM = """
    FROM assets a
    JOIN user_asset_categories b
      ON a.category_id = b.id AND a.user_id = b.user_id
"""

ASSET_COLUMNS = """
    SELECT a.id,
           a.name,
           a.category_id,
           b.name AS category,
           a.amount,
           a.purchase_price,
           a.status,
           a.amount * a.purchase_price AS total_purchase_price
"""

# Sort keys accepted from clients, mapped to the expression they order by.
SORTABLE_FIELDS = {
    "id": "a.id",
    "name": "a.name",
    "category": "b.name",
    "category_id": "a.category_id",
    "amount": "a.amount",
    "purchase_price": "a.purchase_price",
    "status": "a.status",
    "total_purchase_price": "total_purchase_price",
}

FILTER_COLUMNS = {
    "name": "a.name",
    "category": "b.name",
    "status": "a.status",
}


@dataclass(frozen=True)
class AssetListFilter:
    name: str | None = None
    category: str | None = None
    status: str | None = None
    sort: str | None = None
    page: int | None = None
    limit: int | None = None


@dataclass(frozen=True)
class Query:
    sql: str
    params: tuple[Any, ...]


def build_contains_pattern(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    return f"%{cleaned}%"


def build_asset_filters(
    name: str | None = None,
    category: str | None = None,
    status: str | None = None,
) -> list[tuple[str, str]]:
    """Compile the optional text filters into ``(predicate, param)`` pairs.

    Each predicate is a case-insensitive contains match with the pattern bound
    as a parameter. Missing or blank values add nothing.
    """
    predicates: list[tuple[str, str]] = []
    for field, value in (("name", name), ("category", category), ("status", status)):
        pattern = build_contains_pattern(value)
        if pattern is None:
            continue
        predicates.append((f"{FILTER_COLUMNS[field]} ILIKE %s", pattern))
    return predicates


def parse_sort_spec(sort: str | None) -> list[tuple[str, str]]:
    """Parse ``"field [asc|desc], ..."`` into ordered ``(expression, direction)`` pairs.

    Pairs naming an unknown field, an unknown direction, or carrying extra
    tokens are dropped one by one; the remaining pairs keep their order.
    """
    if not sort:
        return []
    clauses: list[tuple[str, str]] = []
    for part in sort.split(","):
        tokens = part.split()
        if not tokens or len(tokens) > 2:
            continue
        expression = SORTABLE_FIELDS.get(tokens[0].lower())
        if expression is None:
            continue
        direction = tokens[1].upper() if len(tokens) == 2 else "ASC"
        if direction not in ("ASC", "DESC"):
            continue
        clauses.append((expression, direction))
    return clauses


def compute_limit_offset(page: int | None, limit: int | None) -> tuple[int, int] | None:
    if page is None or limit is None or page <= 0 or limit <= 0:
        return None
    return limit, (page - 1) * limit


def build_pagination_clause(
    sort: str | None,
    page: int | None,
    limit: int | None,
) -> tuple[str, tuple[Any, ...]]:
    sql = ""
    params: tuple[Any, ...] = ()
    clauses = parse_sort_spec(sort)
    if clauses:
        sql += " ORDER BY " + ", ".join(f"{expr} {direction}" for expr, direction in clauses)
    window = compute_limit_offset(page, limit)
    if window is not None:
        sql += " LIMIT %s OFFSET %s"
        params = window
    return sql, params


def build_asset_list_queries(user_id: int, filters: AssetListFilter) -> tuple[Query, Query]:
    """Return the paginated fetch query and the unpaginated count query.

    Both share the co-scoped join, the owner predicate and the text filters,
    so the count always describes the population the fetch pages through.
    """
    where_sql = "WHERE a.user_id = %s"
    where_params: list[Any] = [user_id]
    for predicate, param in build_asset_filters(filters.name, filters.category, filters.status):
        where_sql += f" AND {predicate}"
        where_params.append(param)

    page_sql, page_params = build_pagination_clause(filters.sort, filters.page, filters.limit)

    fetch = Query(
        sql=f"{ASSET_COLUMNS}{ASSET_FROM}{where_sql}{page_sql}",
        params=tuple(where_params) + page_params,
    )
    count = Query(
        sql=f"SELECT COUNT(*) AS total{ASSET_FROM}{where_sql}",
        params=tuple(where_params),
    )
    return fetch, count


def run_fetch_and_count(
    fetch: Query,
    count: Query,
    connect: Callable = db_conn,
) -> tuple[list[dict[str, Any]], int]:
    """Run both queries on separate connections and wait for both.

    The first failure cancels whatever has not started yet and is re-raised
    once the running sibling has settled; no partial result is returned.
    """

    def fetch_rows() -> list[dict[str, Any]]:
        try:
            with connect() as conn, conn.cursor() as cur:
                cur.execute(fetch.sql, fetch.params)
                return cur.fetchall()
        except PsycopgError as exc:
            raise StorageError("list_assets.fetch", exc) from exc

    def fetch_total() -> int:
        try:
            with connect() as conn, conn.cursor() as cur:
                cur.execute(count.sql, count.params)
                row = cur.fetchone() or {}
                return int(row.get("total") or 0)
        except PsycopgError as exc:
            raise StorageError("list_assets.count", exc) from exc

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="asset-list") as executor:
        rows_future = executor.submit(fetch_rows)
        total_future = executor.submit(fetch_total)
        done, pending = wait((rows_future, total_future), return_when=FIRST_EXCEPTION)
        failed = next((f for f in (rows_future, total_future) if f in done and f.exception()), None)
        if failed is not None:
            for future in pending:
                future.cancel()
            wait(pending)
            raise failed.exception()
        return rows_future.result(), total_future.result()


def build_pagination_meta(page: int | None, limit: int | None, total: int) -> dict[str, int] | None:
    if limit is None or limit <= 0:
        return None
    current = page if page is not None and page > 0 else 1
    total_pages = math.ceil(total / limit)
    if total_pages > 0 and current > total_pages:
        current = total_pages
    return {"page": current, "limit": limit, "total": total, "total_pages": total_pages}
