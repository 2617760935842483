from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from fintrack.models.assets import AssetListQuery, SubmitAssetRequest, UpdateAssetRequest
from fintrack.services.assets import (
    ServiceResult,
    get_asset,
    list_assets,
    list_categories,
    remove_asset,
    submit_asset,
    update_asset_fields,
)
from fintrack.services.auth import require_api_user

router = APIRouter(prefix="/v1/asset")


def respond(result: ServiceResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.to_body()))


@router.get("/list-category")
def asset_categories(req: Request):
    user_id = require_api_user(req)
    return respond(list_categories(user_id))


@router.get("/list")
def asset_list(
    req: Request,
    name: str | None = None,
    category: str | None = None,
    status: str | None = None,
    sort: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    user_id = require_api_user(req)
    query = AssetListQuery(name=name, category=category, status=status, sort=sort, page=page, limit=limit)
    return respond(list_assets(user_id, query))


@router.post("/submit")
def asset_submit(req: Request, payload: SubmitAssetRequest):
    user_id = require_api_user(req)
    return respond(submit_asset(user_id, payload))


@router.get("/{asset_id}")
def asset_detail(asset_id: int, req: Request):
    user_id = require_api_user(req)
    return respond(get_asset(user_id, asset_id))


@router.put("/{asset_id}")
def asset_update(asset_id: int, req: Request, payload: UpdateAssetRequest):
    user_id = require_api_user(req)
    return respond(update_asset_fields(user_id, asset_id, payload))


@router.delete("/{asset_id}")
def asset_delete(asset_id: int, req: Request):
    user_id = require_api_user(req)
    return respond(remove_asset(user_id, asset_id))
