# vip/service.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Optional

from ..config import Config
from ..errors import InvalidData, ShopifyError
from ..models import Order

logger = logging.getLogger(__name__)

# ---- CONFIG ----
COLLECTED_STATUSES = frozenset({"paid", "partially_paid"})
CENTS = Decimal("0.01")


class Outcome(str, Enum):
    ALREADY_TAGGED = "already_tagged"
    NEWLY_TAGGED = "newly_tagged"
    BELOW_THRESHOLD = "below_threshold"
    FAILED = "failed"


@dataclass
class ClassificationResult:
    customer_id: str
    outcome: Outcome
    spend: Optional[Decimal] = None
    reason: Optional[str] = None

    @property
    def is_vip(self) -> bool:
        return self.outcome in (Outcome.ALREADY_TAGGED, Outcome.NEWLY_TAGGED)

    def as_dict(self) -> dict:
        out = {"customer": self.customer_id, "outcome": self.outcome.value}
        if self.spend is not None:
            out["spend"] = str(self.spend)
        if self.reason:
            out["error"] = self.reason
        return out


# ---- SPEND ----

def is_collected(order: Order) -> bool:
    return (order.financial_status or "").lower() in COLLECTED_STATUSES


def _price(order: Order) -> Decimal:
    raw = order.total_price
    if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
        raise InvalidData(f"order {order.id}: missing total_price")
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        raise InvalidData(f"order {order.id}: bad total_price {raw!r}")
    if not amount.is_finite():
        raise InvalidData(f"order {order.id}: bad total_price {raw!r}")
    to_cents(amount)
    return amount


def to_cents(amount: Decimal) -> Decimal:
    """Round half-up to cents. Amounts too large for the decimal context are InvalidData."""
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidData(f"amount {amount} cannot be rounded to cents")


def compute_lifetime_spend(orders: Iterable[Order]) -> Decimal:
    """Sum total_price over orders where money was actually collected (paid / partially_paid)."""
    total = Decimal("0")
    for order in orders:
        if is_collected(order):
            total += _price(order)
    return total


# ---- TAGS ----

class Action(str, Enum):
    ALREADY_TAGGED = "already_tagged"
    BELOW_THRESHOLD = "below_threshold"
    APPLY = "apply"


@dataclass
class Decision:
    action: Action
    new_tags: list[str] = field(default_factory=list)
    note_text: Optional[str] = None


def iso_utc_ms(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_vip_note(tag: str, spend: Decimal, now: datetime, currency_symbol: str = "₹") -> str:
    amount = to_cents(spend)
    return f"Tagged as {tag} on {iso_utc_ms(now)} (Lifetime spend: {currency_symbol}{amount})"


def reconcile(current_tags: Iterable[str], spend: Decimal, threshold: Decimal, *,
              tag: str = "VIP-Customer", currency_symbol: str = "₹",
              now: Optional[datetime] = None) -> Decision:
    cur = list(current_tags or [])
    if tag in cur:
        return Decision(Action.ALREADY_TAGGED)
    if spend < threshold:
        return Decision(Action.BELOW_THRESHOLD)
    if now is None:
        now = datetime.now(timezone.utc)
    return Decision(
        Action.APPLY,
        new_tags=cur + [tag],
        note_text=format_vip_note(tag, spend, now, currency_symbol),
    )


# ---- LOCKS ----

class CustomerLocks:
    """One mutex per customer id; entries are dropped once nobody holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, customer_id: str):
        with self._guard:
            entry = self._locks.setdefault(customer_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(customer_id, None)

    def __len__(self):
        with self._guard:
            return len(self._locks)


# ---- CLASSIFIER ----

class VipClassifier:
    """
    Decide and apply the VIP tag for one customer.

    tags=None means "fetch fresh state" (webhook path); the sweep passes the
    tags it already has from the listing. Either way, a customer that already
    carries the tag is never written to again.
    """

    def __init__(self, client, config: Config, locks: Optional[CustomerLocks] = None, clock=None):
        self.client = client
        self.threshold = config.vip_threshold
        self.tag = config.vip_tag
        self.currency_symbol = config.currency_symbol
        self.locks = locks or CustomerLocks()
        self._now = clock or (lambda: datetime.now(timezone.utc))

    def classify(self, customer_id, tags: Optional[Iterable[str]] = None) -> ClassificationResult:
        customer_id = str(customer_id)
        with self.locks.hold(customer_id):
            try:
                return self._classify(customer_id, None if tags is None else list(tags))
            except (ShopifyError, InvalidData) as e:
                logger.warning(f"[VIP] {customer_id} classification failed: {e}")
                return ClassificationResult(customer_id, Outcome.FAILED, reason=str(e))

    def _classify(self, customer_id: str, tags: Optional[list[str]]) -> ClassificationResult:
        fresh = tags is None
        if fresh:
            tags = self.client.get_customer(customer_id).tags

        if self.tag in tags:
            logger.info(f"[VIP] {customer_id} already tagged as {self.tag}")
            return ClassificationResult(customer_id, Outcome.ALREADY_TAGGED)

        spend = compute_lifetime_spend(self.client.list_orders(customer_id))
        logger.info(f"[VIP] {customer_id} lifetime spend {self.currency_symbol}{to_cents(spend)}")

        decision = self._reconcile(tags, spend)
        if decision.action == Action.BELOW_THRESHOLD:
            return ClassificationResult(customer_id, Outcome.BELOW_THRESHOLD, spend=spend)

        if not fresh:
            # listing data may be stale (a webhook can tag mid-sweep); re-read before writing
            decision = self._reconcile(self.client.get_customer(customer_id).tags, spend)
            if decision.action == Action.ALREADY_TAGGED:
                logger.info(f"[VIP] {customer_id} tagged concurrently; skipping write")
                return ClassificationResult(customer_id, Outcome.ALREADY_TAGGED, spend=spend)

        self.client.set_tags(customer_id, decision.new_tags)
        try:
            self.client.append_note(customer_id, decision.note_text)
        except ShopifyError as e:
            # tag is the durable fact; the note is audit trail only
            logger.warning(f"[VIP] {customer_id} tagged but note append failed: {e}")

        logger.info(f"[VIP] {customer_id} added {self.tag} tag")
        return ClassificationResult(customer_id, Outcome.NEWLY_TAGGED, spend=spend)

    def _reconcile(self, tags, spend: Decimal) -> Decision:
        return reconcile(tags, spend, self.threshold, tag=self.tag,
                         currency_symbol=self.currency_symbol, now=self._now())
