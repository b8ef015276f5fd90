"""
Shopify REST Admin client for the VIP tagger.

Endpoints used:
    GET  /customers.json?limit=N                      - customer listing (Link-header paging)
    GET  /customers/{id}.json                         - single customer (tags + note)
    GET  /orders.json?customer_id=ID&status=any       - a customer's orders (Link-header paging)
    PUT  /customers/{id}.json                         - tag / note writes

No retries here: a failed call surfaces as TransportError / ApiError and the
caller decides whether to replay.
"""

import logging
from typing import Optional

import requests

from .config import Config
from .errors import ApiError, InvalidData, NotFound, TransportError
from .models import Customer, Order, join_tags

logger = logging.getLogger(__name__)

UA = "vip-tagger/1.0"
ORDERS_PAGE_SIZE = 250


class ShopifyClient:

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.base_url = config.base_url
        self.page_size = config.page_size
        self.timeout = config.timeout
        self.dry_run = config.dry_run
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": config.shopify_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": UA,
        })

    # ------------------------------------------------------------------
    # Internal: one request, error classification, no retries
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, params: dict = None, json_body: dict = None):
        url = self._url(path)
        try:
            r = self.session.request(method, url, params=params, json=json_body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if r.status_code == 404:
            raise NotFound(f"{method} {url} -> 404", 404, r.text[:500])
        if not 200 <= r.status_code < 300:
            raise ApiError(f"{method} {url} -> {r.status_code}", r.status_code, r.text[:500])
        return r

    def _get_json(self, path: str, params: dict = None):
        r = self._request("GET", path, params=params)
        try:
            return r.json(), r
        except ValueError:
            raise ApiError(f"GET {r.url} returned non-JSON body", r.status_code, r.text[:500])

    @staticmethod
    def _next_link(response) -> Optional[str]:
        # requests parses the Link header into {rel: {"url": ...}}
        return (response.links or {}).get("next", {}).get("url")

    @staticmethod
    def _field(data, key: str, url: str):
        if not isinstance(data, dict) or key not in data:
            raise ApiError(f"GET {url} response missing '{key}'", 200, str(data)[:500])
        return data[key]

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def list_customers_page(self, cursor: Optional[str] = None) -> tuple[list[Customer], Optional[str]]:
        """Return (customers, next_cursor_or_None). The cursor is the next page URL."""
        if cursor:
            data, r = self._get_json(cursor)
        else:
            data, r = self._get_json("customers.json", params={"limit": self.page_size})
        rows = self._field(data, "customers", r.url) or []
        customers, skipped = [], 0
        for row in rows:
            try:
                customers.append(Customer.from_payload(row))
            except InvalidData as e:
                # one bad record must not cost the rest of the page
                skipped += 1
                logger.warning(f"Skipping malformed customer record: {e}")
        if skipped:
            logger.warning(f"Skipped {skipped} of {len(rows)} customer record(s) on page {r.url}")
        return customers, self._next_link(r)

    def get_customer(self, customer_id) -> Customer:
        data, r = self._get_json(f"customers/{customer_id}.json")
        return Customer.from_payload(self._field(data, "customer", r.url))

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def list_orders(self, customer_id) -> list[Order]:
        """All orders for a customer, any status. Follows Link paging so long histories aren't cut off."""
        orders = []
        data, r = self._get_json("orders.json", params={
            "customer_id": customer_id,
            "status": "any",
            "limit": ORDERS_PAGE_SIZE,
        })
        while True:
            orders.extend(Order.from_payload(o) for o in (self._field(data, "orders", r.url) or []))
            nxt = self._next_link(r)
            if not nxt:
                break
            data, r = self._get_json(nxt)
        return orders

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _put_customer(self, customer_id, fields: dict):
        payload = {"customer": {"id": _id_value(customer_id), **fields}}
        if self.dry_run:
            logger.info(f"[dry-run] PUT customers/{customer_id}.json skipped: {fields}")
            return
        self._request("PUT", f"customers/{customer_id}.json", json_body=payload)

    def set_tags(self, customer_id, tags) -> None:
        csv = join_tags(tags)
        self._put_customer(customer_id, {"tags": csv})
        logger.info(f"Updated tags for customer {customer_id}: {csv}")

    def append_note(self, customer_id, text: str) -> None:
        # read-modify-write; not atomic against other writers
        current = self.get_customer(customer_id).note or ""
        updated = f"{current}\n{text}" if current else text
        self._put_customer(customer_id, {"note": updated})
        logger.info(f"Added note to customer {customer_id}")


def _id_value(customer_id):
    s = str(customer_id)
    return int(s) if s.isdigit() else s
