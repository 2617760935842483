import hashlib
from datetime import datetime, timezone

from fastapi import HTTPException, Request
from psycopg import Error as PsycopgError

from fintrack.core.config import settings
from fintrack.core.errors import ERR_NOT_AUTHORIZED, StorageError
from fintrack.db.pool import db_conn
from fintrack.services.state import rate_limiter


def get_client_ip(req: Request) -> str:
    forwarded = req.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = req.headers.get("x-real-ip", "")
    if real_ip:
        return real_ip.strip()
    if req.client:
        return req.client.host
    return "unknown"


def hash_api_key(plain: str) -> str:
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


def parse_bearer_token(req: Request) -> str:
    header = req.headers.get("authorization", "")
    parts = header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail=ERR_NOT_AUTHORIZED)
    return parts[1].strip()


def get_api_user_by_token(token: str, connect=db_conn) -> int:
    token_hash = hash_api_key(token)
    try:
        with connect() as conn, conn.cursor() as cur:
            cur.execute(
                """
                SELECT k.user_id
                FROM api_keys k
                WHERE k.key_hash=%s AND k.revoked_at IS NULL
                """,
                (token_hash,),
            )
            row = cur.fetchone()
            if not row:
                raise HTTPException(status_code=401, detail=ERR_NOT_AUTHORIZED)
            cur.execute(
                "UPDATE api_keys SET last_used_at=%s WHERE key_hash=%s",
                (datetime.now(timezone.utc), token_hash),
            )
            conn.commit()
    except PsycopgError as exc:
        raise StorageError("get_api_user_by_token", exc) from exc
    return int(row["user_id"])


def enforce_public_rate_limit(req: Request, key: str) -> None:
    key_hash = hash_api_key(key)[:24]
    client_ip = get_client_ip(req)
    if rate_limiter.exceeded(
        f"public:key:{key_hash}",
        settings.public_rate_limit,
        settings.public_rate_window,
    ):
        raise HTTPException(status_code=429, detail="Rate limit exceeded")
    if rate_limiter.exceeded(
        f"public:ip:{client_ip}",
        settings.public_rate_limit,
        settings.public_rate_window,
    ):
        raise HTTPException(status_code=429, detail="Rate limit exceeded")


def require_api_user(req: Request) -> int:
    token = parse_bearer_token(req)
    enforce_public_rate_limit(req, token)
    return get_api_user_by_token(token)
