from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from psycopg import Error as PsycopgError

from fintrack.core.errors import AssetNotFound, StorageError
from fintrack.services.listing import ASSET_COLUMNS, ASSET_FROM


@dataclass(frozen=True)
class AssetRecord:
    name: str
    category_id: int
    user_id: int
    amount: Decimal
    purchase_price: Decimal
    status: str


def list_asset_categories(cur, user_id: int) -> list[dict[str, Any]]:
    try:
        cur.execute(
            """
            SELECT id, name
            FROM user_asset_categories
            WHERE user_id = %s
            ORDER BY name
            """,
            (user_id,),
        )
        return cur.fetchall()
    except PsycopgError as exc:
        raise StorageError("list_asset_categories", exc) from exc


def category_exists(cur, category_id: int, user_id: int) -> bool:
    try:
        cur.execute(
            "SELECT 1 AS found FROM user_asset_categories WHERE id = %s AND user_id = %s",
            (category_id, user_id),
        )
        return cur.fetchone() is not None
    except PsycopgError as exc:
        raise StorageError("category_exists", exc) from exc


def insert_asset(cur, asset: AssetRecord) -> int:
    try:
        cur.execute(
            """
            INSERT INTO assets (name, category_id, user_id, amount, purchase_price, status)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (asset.name, asset.category_id, asset.user_id, asset.amount, asset.purchase_price, asset.status),
        )
        return int(cur.fetchone()["id"])
    except PsycopgError as exc:
        raise StorageError("insert_asset", exc) from exc


def get_asset_by_id(cur, asset_id: int, user_id: int, for_update: bool = False) -> dict[str, Any]:
    """Fetch one asset view scoped to its owner.

    With ``for_update`` the asset row (not its category) is locked until the
    surrounding transaction ends; the statement waits for a competing holder
    instead of failing. Raises AssetNotFound when id + owner match nothing,
    whoever else may own that id.
    """
    sql = f"{ASSET_COLUMNS}{ASSET_FROM}WHERE a.id = %s AND a.user_id = %s"
    if for_update:
        sql += " FOR UPDATE OF a"
    try:
        cur.execute(sql, (asset_id, user_id))
        row = cur.fetchone()
    except PsycopgError as exc:
        raise StorageError("get_asset_by_id", exc) from exc
    if not row:
        raise AssetNotFound(asset_id)
    return row


def update_asset(cur, asset: AssetRecord, asset_id: int, user_id: int) -> None:
    # Caller must already hold the row lock from get_asset_by_id(for_update=True).
    try:
        cur.execute(
            """
            UPDATE assets
            SET name = %s,
                category_id = %s,
                amount = %s,
                purchase_price = %s,
                status = %s,
                updated_at = now()
            WHERE id = %s AND user_id = %s
            RETURNING id
            """,
            (asset.name, asset.category_id, asset.amount, asset.purchase_price, asset.status, asset_id, user_id),
        )
        row = cur.fetchone()
    except PsycopgError as exc:
        raise StorageError("update_asset", exc) from exc
    if not row:
        raise AssetNotFound(asset_id)


def delete_asset(cur, asset_id: int, user_id: int) -> None:
    try:
        cur.execute(
            "DELETE FROM assets WHERE id = %s AND user_id = %s RETURNING id",
            (asset_id, user_id),
        )
        row = cur.fetchone()
    except PsycopgError as exc:
        raise StorageError("delete_asset", exc) from exc
    if not row:
        raise AssetNotFound(asset_id)
