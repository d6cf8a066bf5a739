from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies import get_checkout_service, get_table_manager
from managers.table_manager import TableConnectionManager
from models.checkout import CheckoutRequest, CheckoutResponse, CheckoutSession
from repository import checkout as checkout_repo
from services.checkout import CheckoutError, CheckoutService, InvalidCartError

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse, tags=["checkout"])
@router.post("/create-checkout-session", response_model=CheckoutResponse, tags=["checkout"], include_in_schema=False)
async def create_checkout_session(
    request: Request,
    checkout: CheckoutRequest = Body(..., description="Cart to check out"),
    service: CheckoutService = Depends(get_checkout_service),
):
    """カートから Stripe Checkout セッションを作成し、支払いページのURLを返す"""
    try:
        return await run_in_threadpool(service.create, checkout, request.headers.get("origin"))
    except InvalidCartError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except CheckoutError as e:
        return JSONResponse(status_code=500, content={"error": e.message, "checkoutId": e.checkout_id})


@router.get("/checkout/{checkout_id}", response_model=CheckoutSession, tags=["checkout"])
async def get_checkout_session(
    checkout_id: str = Path(..., description="Checkout ID to retrieve"),
    tables: TableConnectionManager = Depends(get_table_manager),
):
    session = checkout_repo.get_checkout_session(tables, checkout_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Checkout {checkout_id} not found")
    return session
