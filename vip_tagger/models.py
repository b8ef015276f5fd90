# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import InvalidData

TAG_DELIMITER = ", "


def parse_tags(raw) -> list[str]:
    """
    Shopify stores customer tags as one comma-joined string ("a, b, c").
    Return them as a de-duplicated list, first-seen order preserved.
    Accepts a list too (GraphQL and some webhook payloads send arrays).
    """
    if not raw:
        return []
    parts = raw if isinstance(raw, (list, tuple, set)) else str(raw).split(",")
    seen = set()
    tags = []
    for part in parts:
        t = str(part).strip()
        if t and t not in seen:
            seen.add(t)
            tags.append(t)
    return tags


def join_tags(tags) -> str:
    return TAG_DELIMITER.join(parse_tags(list(tags)))


@dataclass
class Customer:
    id: str
    email: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    note: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "Customer":
        if not isinstance(data, dict) or data.get("id") is None:
            raise InvalidData(f"customer record without id: {str(data)[:200]}")
        return cls(
            id=str(data["id"]),
            email=data.get("email"),
            tags=parse_tags(data.get("tags")),
            note=data.get("note") or "",
        )

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


@dataclass
class Order:
    id: Optional[str]
    customer_id: Optional[str]
    financial_status: Optional[str]
    total_price: Any  # raw value from Shopify, validated by the spend calculator

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "Order":
        if not isinstance(data, dict):
            raise InvalidData(f"order record is not an object: {str(data)[:200]}")
        customer = data.get("customer") or {}
        customer_id = customer.get("id") if isinstance(customer, dict) else None
        if customer_id is None:
            customer_id = data.get("customer_id")
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            customer_id=str(customer_id) if customer_id is not None else None,
            financial_status=data.get("financial_status"),
            total_price=data.get("total_price"),
        )
