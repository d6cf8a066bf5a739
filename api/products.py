from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool
from typing import List, Optional

from api.dependencies import get_table_manager
from managers.auth_manager import require_admin_key
from managers.table_manager import TableConnectionManager
from models.product import Product, ProductUpdate
from repository import asset as asset_repo
from repository import product as product_repo

router = APIRouter()


@router.get("/products", response_model=List[Product], tags=["products"])
async def list_products(
    active: Optional[bool] = Query(None, description="Filter by active flag (shop uses true)"),
    limit: int = Query(100, description="Maximum number of products to return"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    return await run_in_threadpool(product_repo.query_products, tables, active, limit)


@router.get("/products/{product_id}", response_model=Product, tags=["products"])
async def get_product(
    product_id: str = Path(..., description="Product ID to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    product = await run_in_threadpool(product_repo.get_product, tables, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product


def _check_default_asset(tables: TableConnectionManager, asset_id: Optional[str]):
    """デフォルトデザインに指定するアセットは存在していること。未指定・空文字(リンク解除)は可"""
    if asset_id and asset_repo.get_asset(tables, asset_id) is None:
        raise HTTPException(status_code=400, detail=f"Asset {asset_id} not found")


@router.post("/products", response_model=Product, status_code=201, tags=["products"],
             dependencies=[Depends(require_admin_key)])
async def create_product(
    product: Product = Body(..., description="Product to create"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    def create() -> Product:
        _check_default_asset(tables, product.default_asset_id)
        if product_repo.get_product(tables, product.id) is not None:
            raise HTTPException(status_code=409, detail=f"Product {product.id} already exists")
        return product_repo.create_product(tables, product)

    return await run_in_threadpool(create)


@router.put("/products/{product_id}", response_model=Product, tags=["products"],
            dependencies=[Depends(require_admin_key)])
async def update_product(
    product_id: str = Path(..., description="Product ID to update"),
    update: ProductUpdate = Body(...),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    """商品を部分更新する。defaultAssetId でデザインをリンクし、空文字でリンク解除する"""
    def merge() -> Optional[Product]:
        _check_default_asset(tables, update.default_asset_id)
        return product_repo.update_product(tables, product_id, update)

    product = await run_in_threadpool(merge)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product


@router.delete("/products/{product_id}", status_code=204, tags=["products"],
               dependencies=[Depends(require_admin_key)])
async def delete_product(
    product_id: str = Path(..., description="Product ID to delete"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    if not await run_in_threadpool(product_repo.delete_product, tables, product_id):
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
