"""
Shared fixtures: an in-memory Shopify stand-in, a synchronous task runner and
a Config that never touches the real environment.
"""
from concurrent.futures import Future
from decimal import Decimal

import pytest

from vip_tagger.config import Config
from vip_tagger.models import Customer, Order, parse_tags


class FakeShopify:
    """Behaves like ShopifyClient against a dict-backed store and records every call."""

    def __init__(self):
        self.customers = {}
        self.orders = {}
        self.pages = None  # optional explicit pagination: list of lists of customer ids
        self.order_errors = {}
        self.note_error = None
        self.tag_error = None
        self.calls = []
        self.set_tags_calls = []
        self.append_note_calls = []

    # -- setup helpers --
    def add_customer(self, cid, tags="", note="", email=None, orders=()):
        cid = str(cid)
        self.customers[cid] = Customer(id=cid, email=email or f"{cid}@example.com", tags=parse_tags(tags), note=note)
        self.orders[cid] = [Order(id=f"{cid}-{i}", customer_id=cid, financial_status=s, total_price=p)
                            for i, (s, p) in enumerate(orders)]
        return self.customers[cid]

    # -- client surface --
    def list_customers_page(self, cursor=None):
        self.calls.append(("list_customers_page", cursor))
        pages = self.pages or [list(self.customers)]
        idx = int(cursor) if cursor else 0
        customers = [_copy(self.customers[cid]) for cid in pages[idx]]
        nxt = str(idx + 1) if idx + 1 < len(pages) else None
        return customers, nxt

    def get_customer(self, customer_id):
        self.calls.append(("get_customer", customer_id))
        return _copy(self.customers[str(customer_id)])

    def list_orders(self, customer_id):
        self.calls.append(("list_orders", customer_id))
        err = self.order_errors.get(str(customer_id))
        if err:
            raise err
        return list(self.orders.get(str(customer_id), []))

    def set_tags(self, customer_id, tags):
        self.calls.append(("set_tags", customer_id))
        if self.tag_error:
            raise self.tag_error
        self.set_tags_calls.append((str(customer_id), list(tags)))
        self.customers[str(customer_id)].tags = parse_tags(list(tags))

    def append_note(self, customer_id, text):
        self.calls.append(("append_note", customer_id))
        if self.note_error:
            raise self.note_error
        self.append_note_calls.append((str(customer_id), text))
        c = self.customers[str(customer_id)]
        c.note = f"{c.note}\n{text}" if c.note else text


def _copy(c: Customer) -> Customer:
    return Customer(id=c.id, email=c.email, tags=list(c.tags), note=c.note)


class SyncTasks:
    """TaskRunner stand-in that runs each task inline and keeps the futures."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, description="", **kwargs):
        f = Future()
        try:
            f.set_result(fn(*args, **kwargs))
        except Exception as e:
            f.set_exception(e)
        self.submitted.append((description, f))
        return f

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def config():
    return Config(
        shopify_store="test-store.myshopify.com",
        shopify_token="shpat_test",
        vip_threshold=Decimal("11000"),
        webhook_secret="s3cr3t",
    )


@pytest.fixture
def fake_shopify():
    return FakeShopify()


@pytest.fixture
def sync_tasks():
    return SyncTasks()
