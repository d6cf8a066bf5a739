from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging
import uuid

from api.dependencies import get_blob_manager, get_table_manager
from managers.blob_manager import BLOBConnectionManager
from managers.table_manager import TableConnectionManager
from models.mockup import Mockup, MockupRequest, MockupResponse
from repository import asset as asset_repo
from repository import mockup as mockup_repo
from repository import product as product_repo
from utils.dates import epoch_ms

router = APIRouter()
logger = logging.getLogger(__name__)


def save_mockup_image(tables: TableConnectionManager, blobs: BLOBConnectionManager, request: MockupRequest,
                      png: bytes) -> Mockup:
    storage_path = f"mockups/{epoch_ms()}-{uuid.uuid4()}.png"
    image_url = blobs.upload_png(storage_path, png)
    return mockup_repo.create_mockup(tables, Mockup(asset_id=request.asset_id, product_id=request.product_id,
                                                    image_url=image_url, storage_path=storage_path))


@router.post("/save-mockup", response_model=MockupResponse, tags=["mockups"])
async def save_mockup(
    request: MockupRequest = Body(...),
    tables: TableConnectionManager = Depends(get_table_manager),
    blobs: Optional[BLOBConnectionManager] = Depends(get_blob_manager),
):
    """スタジオで確定したプレビュー画像を保存する"""
    if not request.is_complete():
        return JSONResponse(status_code=400, content={"error": "Missing dataUrl, assetId, or productId"})
    try:
        png = request.png_bytes()
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    try:
        if blobs is None:
            raise RuntimeError("Object storage is not configured")
        mockup = await run_in_threadpool(save_mockup_image, tables, blobs, request, png)
    except Exception as e:
        logger.error("save_mockup.failed asset_id=%s product_id=%s error=%s", request.asset_id, request.product_id, e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.info("save_mockup.saved mockup_id=%s asset_id=%s product_id=%s", mockup.id, mockup.asset_id, mockup.product_id)
    return MockupResponse(id=mockup.id, image_url=mockup.image_url)


def with_titles(tables: TableConnectionManager, mockup: Mockup) -> Mockup:
    asset = asset_repo.get_asset(tables, mockup.asset_id)
    product = product_repo.get_product(tables, mockup.product_id)
    mockup.asset_title = asset.title if asset else None
    mockup.product_name = product.name if product else None
    return mockup


@router.get("/mockups", response_model=List[Mockup], tags=["mockups"])
async def list_mockups(
    limit: int = Query(50, description="Maximum number of mockups to return"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    def load() -> List[Mockup]:
        return [with_titles(tables, m) for m in mockup_repo.query_mockups(tables, limit)]

    return await run_in_threadpool(load)


@router.get("/mockups/{mockup_id}", response_model=Mockup, tags=["mockups"])
async def get_mockup(
    mockup_id: str = Path(..., description="Mockup ID to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    mockup = await run_in_threadpool(mockup_repo.get_mockup, tables, mockup_id)
    if mockup is None:
        raise HTTPException(status_code=404, detail=f"Mockup {mockup_id} not found")
    return await run_in_threadpool(with_titles, tables, mockup)
