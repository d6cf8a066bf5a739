from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool
from typing import List, Literal, Optional

from api.dependencies import get_table_manager
from managers.auth_manager import require_admin_key
from managers.table_manager import TableConnectionManager
from models.asset import Asset, AssetCreate
from models.base import ApiModel
from repository import asset as asset_repo

router = APIRouter()


class PublishUpdate(ApiModel):
    published: bool


@router.get("/assets", response_model=List[Asset], tags=["assets"])
async def list_assets(
    published: Optional[bool] = Query(None, description="Filter by publication flag"),
    job_id: Optional[str] = Query(None, alias="jobId", description="Filter by generation job"),
    order_by: Literal['created_at', 'title'] = Query('created_at', alias="orderBy"),
    limit: int = Query(50, description="Maximum number of assets to return"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    return await run_in_threadpool(asset_repo.query_assets, tables, published, job_id, order_by, limit)


@router.get("/assets/{asset_id}", response_model=Asset, tags=["assets"])
async def get_asset(
    asset_id: str = Path(..., description="Asset ID to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    asset = await run_in_threadpool(asset_repo.get_asset, tables, asset_id)
    if asset is None:
        raise HTTPException(status_code=404, detail=f"Asset {asset_id} not found")
    return asset


@router.post("/assets", response_model=Asset, status_code=201, tags=["assets"],
             dependencies=[Depends(require_admin_key)])
async def create_asset(
    asset: AssetCreate = Body(..., description="Manually registered design"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    return await run_in_threadpool(asset_repo.create_asset, tables, asset.to_asset())


@router.patch("/assets/{asset_id}/publish", response_model=Asset, tags=["assets"],
              dependencies=[Depends(require_admin_key)])
async def publish_asset(
    asset_id: str = Path(...),
    update: PublishUpdate = Body(...),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    asset = await run_in_threadpool(asset_repo.set_published, tables, asset_id, update.published)
    if asset is None:
        raise HTTPException(status_code=404, detail=f"Asset {asset_id} not found")
    return asset
