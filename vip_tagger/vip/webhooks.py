# vip/webhooks.py
"""
Order webhooks (orders/paid, orders/create).

handle() only verifies and enqueues; Shopify wants a fast 200, so the actual
classification runs on the task runner after the response is on its way.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import SignatureError
from ..models import Order
from .service import ClassificationResult, VipClassifier, is_collected
from .verify import verify_webhook_signature

logger = logging.getLogger(__name__)


@dataclass
class WebhookResponse:
    status: int
    body: dict = field(default_factory=dict)


class WebhookDispatcher:

    def __init__(self, classifier: VipClassifier, tasks, secret: str = ""):
        self.classifier = classifier
        self.tasks = tasks
        self.secret = secret or ""
        if not self.secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set; webhook signatures will NOT be verified")

    def handle(self, raw_body: bytes, signature: Optional[str], topic: str = "orders/paid") -> WebhookResponse:
        try:
            verify_webhook_signature(raw_body, signature, self.secret)
        except SignatureError as e:
            logger.warning(f"[WEBHOOK] {topic} rejected: {e}")
            return WebhookResponse(401, {"ok": False, "error": "invalid signature"})

        self.tasks.submit(self.process, raw_body, topic, description=f"webhook {topic}")
        return WebhookResponse(200, {"ok": True})

    def process(self, raw_body: bytes, topic: str = "orders/paid") -> Optional[ClassificationResult]:
        """Runs after the ack. Returns the classification, or None when the order is skipped."""
        try:
            payload = json.loads(raw_body)
        except ValueError as e:
            logger.warning(f"[WEBHOOK] {topic} body is not JSON: {e}")
            return None
        if not isinstance(payload, dict):
            logger.warning(f"[WEBHOOK] {topic} body is not an order object")
            return None

        order = Order.from_payload(payload)
        if not order.customer_id:
            logger.info(f"[WEBHOOK] {topic} order {order.id} has no customer; skipping")
            return None
        if not is_collected(order):
            logger.info(f"[WEBHOOK] {topic} order {order.id} status={order.financial_status}; skipping")
            return None

        result = self.classifier.classify(order.customer_id)
        logger.info(f"[WEBHOOK] {topic} order {order.id} customer {order.customer_id} -> {result.outcome.value}")
        return result
