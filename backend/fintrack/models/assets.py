from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AssetStatus = Literal["active", "inactive", "sold"]


class AssetListQuery(BaseModel):
    name: str | None = None
    category: str | None = None
    status: str | None = None
    sort: str | None = None
    page: int | None = None
    limit: int | None = None


class SubmitAssetRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    category_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0)
    purchase_price: Decimal = Field(gt=0)
    status: AssetStatus


class UpdateAssetRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=100)
    category_id: int | None = Field(default=None, gt=0)
    amount: Decimal | None = Field(default=None, gt=0)
    purchase_price: Decimal | None = Field(default=None, gt=0)
    status: AssetStatus | None = None


class AssetCategoryItem(BaseModel):
    id: int
    name: str


class AssetView(BaseModel):
    id: int
    name: str
    category_id: int
    category: str
    amount: Decimal
    purchase_price: Decimal
    status: str
    total_purchase_price: Decimal


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
