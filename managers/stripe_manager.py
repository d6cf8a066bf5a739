from typing import Any, Dict, List
import json
import stripe

from config import Settings
from models.checkout import CheckoutSession


class StripeManager:
    """
    Stripe への窓口

    グローバルな stripe.api_key は使わず、呼び出しごとに api_key を渡す。
    """

    def __init__(self, secret_key: str, webhook_secret: str):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeManager":
        return cls(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)

    def create_checkout_session(self, session: CheckoutSession, success_url: str, cancel_url: str):
        if not self.secret_key:
            raise RuntimeError("STRIPE_SECRET_KEY is not set")
        metadata = {"checkoutId": session.id, "userId": session.user_id}
        return stripe.checkout.Session.create(
            api_key=self.secret_key,
            mode='payment',
            line_items=self.to_line_items(session),
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=session.id,
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
        )

    @staticmethod
    def to_line_items(session: CheckoutSession) -> List[Dict[str, Any]]:
        return [
            {
                'quantity': item.quantity,
                'price_data': {
                    'currency': session.amount.currency,
                    'unit_amount': session.amount.unit_amount,
                    'product_data': {
                        'name': item.display_name(),
                        'metadata': {
                            'assetId': item.asset_id,
                            'productId': item.product_id,
                            'cartItemId': item.id,
                        },
                    },
                },
            }
            for item in session.items
        ]

    def verify_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        """
        生のリクエストボディに対して署名を検証し、イベントを dict で返す

        Raises:
            ValueError: ペイロードが不正
            stripe.SignatureVerificationError: 署名が不正
        """
        if not self.webhook_secret:
            raise stripe.SignatureVerificationError("STRIPE_WEBHOOK_SECRET is not set", sig_header)
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), sig_header, self.webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
        return json.loads(payload)
