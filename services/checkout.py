from typing import Optional
import logging

from config import Settings
from managers.table_manager import TableConnectionManager
from managers.stripe_manager import StripeManager
from models.checkout import (AmountSummary, CheckoutRequest, CheckoutResponse, CheckoutSession, MAX_CART_ITEMS,
                             MAX_ITEMS_JSON_LENGTH, serialize_items)
from repository import checkout as checkout_repo

logger = logging.getLogger(__name__)


class InvalidCartError(Exception):
    pass


class EmptyCartError(InvalidCartError):
    pass


class CartTooLargeError(InvalidCartError):
    pass


class CheckoutError(Exception):
    def __init__(self, message: str, checkout_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.checkout_id = checkout_id


class CheckoutService:
    """
    チェックアウトセッションの作成

    セッションドキュメントを先に書き込み、その id を Stripe の metadata.checkoutId に渡す。
    webhook 側はこの id で注文を突き合わせる。
    """

    def __init__(self, settings: Settings, tables: TableConnectionManager, stripe_manager: StripeManager):
        self.settings = settings
        self.tables = tables
        self.stripe_manager = stripe_manager

    def create(self, request: CheckoutRequest, origin: Optional[str] = None) -> CheckoutResponse:
        if not request.items:
            raise EmptyCartError("No items provided")
        if len(request.items) > MAX_CART_ITEMS:
            raise CartTooLargeError(f"Too many items (max {MAX_CART_ITEMS})")
        if len(serialize_items(request.items)) > MAX_ITEMS_JSON_LENGTH:
            raise CartTooLargeError("Cart is too large")

        origin = (origin or self.settings.FRONT_URL).rstrip("/")
        # 商品ごとの価格連携は未実装のため単価は一律
        amount = AmountSummary.flat_rate(request.items, self.settings.CHECKOUT_UNIT_AMOUNT, self.settings.CHECKOUT_CURRENCY)
        session = CheckoutSession(user_id=request.user_id, items=request.items, amount=amount)

        try:
            checkout_repo.create_checkout_session(self.tables, session)
            logger.info("checkout.created checkout_id=%s user_id=%s items=%s total=%s",
                        session.id, session.user_id, amount.item_count, amount.total)

            stripe_session = self.stripe_manager.create_checkout_session(
                session,
                success_url=f"{origin}/cart?status=success&checkoutId={session.id}",
                cancel_url=f"{origin}/cart?status=cancel&checkoutId={session.id}",
            )

            checkout_repo.update_checkout_status(self.tables, session.id, 'stripe_created',
                                                 stripe_session_id=stripe_session.id)
            logger.info("checkout.stripe_created checkout_id=%s stripe_session_id=%s", session.id, stripe_session.id)

            return CheckoutResponse(url=stripe_session.url, checkout_id=session.id)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error("checkout.failed checkout_id=%s error=%s", session.id, message)
            try:
                checkout_repo.update_checkout_status(self.tables, session.id, 'error', error=message)
            except Exception as mark_error:
                logger.warning("checkout.mark_error_failed checkout_id=%s error=%s", session.id, mark_error)
            raise CheckoutError(message, session.id) from e
