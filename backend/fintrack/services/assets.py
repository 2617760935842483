import logging
from dataclasses import dataclass
from typing import Any, Callable

from psycopg import Error as PsycopgError

from fintrack.core.config import settings
from fintrack.core.errors import (
    ERR_SERVER,
    MSG_SUCCESS,
    CategoryNotFound,
    NotFoundError,
    StorageError,
)
from fintrack.db.pool import db_conn, db_tx
from fintrack.models.assets import (
    AssetCategoryItem,
    AssetListQuery,
    AssetView,
    PaginationMeta,
    SubmitAssetRequest,
    UpdateAssetRequest,
)
from fintrack.services.asset_store import (
    AssetRecord,
    category_exists,
    delete_asset,
    get_asset_by_id,
    insert_asset,
    list_asset_categories,
    update_asset,
)
from fintrack.services.listing import (
    AssetListFilter,
    build_asset_list_queries,
    build_pagination_meta,
    run_fetch_and_count,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    status_code: int
    message: str
    data: Any = None
    pagination: PaginationMeta | None = None

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status_code": self.status_code, "message": self.message, "data": self.data}
        if self.pagination is not None:
            body["pagination"] = self.pagination
        return body


def storage_failure(exc: StorageError) -> ServiceResult:
    logger.error("%s: %s", exc.operation, exc.cause)
    return ServiceResult(500, ERR_SERVER)


def commit(conn, operation: str) -> None:
    try:
        conn.commit()
    except PsycopgError as exc:
        raise StorageError(f"{operation}.commit", exc) from exc


def list_categories(user_id: int, connect: Callable = db_conn) -> ServiceResult:
    try:
        with connect() as conn, conn.cursor() as cur:
            rows = list_asset_categories(cur, user_id)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("list_categories", exc))
    return ServiceResult(200, MSG_SUCCESS, [AssetCategoryItem.model_validate(r) for r in rows])


def list_assets(user_id: int, query: AssetListQuery, connect: Callable = db_conn) -> ServiceResult:
    limit = query.limit
    if limit is not None and limit > settings.list_max_limit:
        limit = settings.list_max_limit
    filters = AssetListFilter(
        name=query.name,
        category=query.category,
        status=query.status,
        sort=query.sort,
        page=query.page,
        limit=limit,
    )
    fetch, count = build_asset_list_queries(user_id, filters)
    try:
        rows, total = run_fetch_and_count(fetch, count, connect)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("list_assets", exc))

    meta = build_pagination_meta(filters.page, filters.limit, total)
    return ServiceResult(
        200,
        MSG_SUCCESS,
        [AssetView.model_validate(r) for r in rows],
        PaginationMeta(**meta) if meta else None,
    )


def submit_asset(user_id: int, payload: SubmitAssetRequest, connect: Callable = db_tx) -> ServiceResult:
    record = AssetRecord(
        name=payload.name,
        category_id=payload.category_id,
        user_id=user_id,
        amount=payload.amount,
        purchase_price=payload.purchase_price,
        status=payload.status,
    )
    try:
        with connect() as conn, conn.cursor() as cur:
            if not category_exists(cur, record.category_id, user_id):
                raise CategoryNotFound(record.category_id)
            insert_asset(cur, record)
            commit(conn, "submit_asset")
    except NotFoundError as exc:
        return ServiceResult(404, exc.message)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("submit_asset", exc))
    return ServiceResult(201, MSG_SUCCESS, payload)


def get_asset(user_id: int, asset_id: int, connect: Callable = db_conn) -> ServiceResult:
    try:
        with connect() as conn, conn.cursor() as cur:
            row = get_asset_by_id(cur, asset_id, user_id)
    except NotFoundError as exc:
        return ServiceResult(404, exc.message)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("get_asset", exc))
    return ServiceResult(200, MSG_SUCCESS, AssetView.model_validate(row))


def merge_asset_update(current: dict[str, Any], payload: UpdateAssetRequest, user_id: int) -> AssetRecord:
    return AssetRecord(
        name=payload.name if payload.name is not None else current["name"],
        category_id=payload.category_id if payload.category_id is not None else int(current["category_id"]),
        user_id=user_id,
        amount=payload.amount if payload.amount is not None else current["amount"],
        purchase_price=payload.purchase_price if payload.purchase_price is not None else current["purchase_price"],
        status=payload.status if payload.status is not None else current["status"],
    )


def update_asset_fields(
    user_id: int,
    asset_id: int,
    payload: UpdateAssetRequest,
    connect: Callable = db_tx,
) -> ServiceResult:
    """Read-modify-write one asset under its row lock.

    A second caller on the same row blocks in the locked read until this
    transaction commits or rolls back, then merges onto what was persisted.
    """
    try:
        with connect() as conn, conn.cursor() as cur:
            current = get_asset_by_id(cur, asset_id, user_id, for_update=True)
            record = merge_asset_update(current, payload, user_id)
            if record.category_id != int(current["category_id"]) and not category_exists(
                cur, record.category_id, user_id
            ):
                raise CategoryNotFound(record.category_id)
            update_asset(cur, record, asset_id, user_id)
            updated = get_asset_by_id(cur, asset_id, user_id)
            commit(conn, "update_asset")
    except NotFoundError as exc:
        return ServiceResult(404, exc.message)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("update_asset", exc))
    return ServiceResult(200, MSG_SUCCESS, AssetView.model_validate(updated))


def remove_asset(user_id: int, asset_id: int, connect: Callable = db_tx) -> ServiceResult:
    try:
        with connect() as conn, conn.cursor() as cur:
            get_asset_by_id(cur, asset_id, user_id, for_update=True)
            delete_asset(cur, asset_id, user_id)
            commit(conn, "remove_asset")
    except NotFoundError as exc:
        return ServiceResult(404, exc.message)
    except StorageError as exc:
        return storage_failure(exc)
    except PsycopgError as exc:
        return storage_failure(StorageError("remove_asset", exc))
    return ServiceResult(200, MSG_SUCCESS)
