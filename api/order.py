from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool
from typing import List

from api.dependencies import get_table_manager
from managers.auth_manager import require_admin_key
from managers.table_manager import TableConnectionManager
from models.order import Order, FulfillmentUpdate
from models.payment import COMPLETED_EVENT_TYPES
from repository import order as order_repo
from repository import payment as payment_repo

router = APIRouter()


def confirmed_checkout_ids(tables: TableConnectionManager, user_id: str) -> set:
    """決済完了イベントが保存されている checkoutId"""
    events = payment_repo.query_events(tables, user_id=user_id)
    return {e.checkout_id for e in events if e.type in COMPLETED_EVENT_TYPES and e.checkout_id}


def orders_with_confirmation(tables: TableConnectionManager, user_id: str, limit: int) -> List[Order]:
    orders = order_repo.query_orders(tables, user_id, limit)
    confirmed = confirmed_checkout_ids(tables, user_id)
    for order in orders:
        order.payment_confirmed = order.id in confirmed
    return orders


@router.get("/orders", response_model=List[Order], tags=["orders"])
async def list_orders(
    user_id: str = Query(..., alias="userId", description="Filter by buyer"),
    limit: int = Query(50, description="Maximum number of orders to return"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    """購入者の注文一覧 (新しい順)"""
    return await run_in_threadpool(orders_with_confirmation, tables, user_id, limit)


@router.get("/orders/{order_id}", response_model=Order, tags=["orders"])
async def get_order(
    order_id: str = Path(..., description="Order ID (= checkout ID) to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    order = await run_in_threadpool(order_repo.get_order, tables, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order


@router.patch("/orders/{order_id}/fulfillment", response_model=Order, tags=["orders"],
              dependencies=[Depends(require_admin_key)])
async def update_fulfillment(
    order_id: str = Path(...),
    update: FulfillmentUpdate = Body(...),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    order = await run_in_threadpool(order_repo.update_fulfillment, tables, order_id, update.status)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order
