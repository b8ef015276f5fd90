"""
Tests for payload parsing into Customer / Order.
"""
import pytest

from vip_tagger.errors import InvalidData
from vip_tagger.models import Customer, Order, join_tags, parse_tags


def test_parse_tags_dedupes_and_strips():
    assert parse_tags(" a, b ,a,, c") == ["a", "b", "c"]
    assert parse_tags(["x", " x", "y"]) == ["x", "y"]
    assert parse_tags(None) == []


def test_join_tags_uses_comma_space():
    assert join_tags(["a", "b", "a"]) == "a, b"


def test_customer_from_payload():
    c = Customer.from_payload({"id": 42, "email": "a@b.c", "tags": "VIP-Customer, x", "note": None})
    assert c.id == "42"
    assert c.has_tag("VIP-Customer")
    assert c.note == ""


@pytest.mark.parametrize("row", [{"tags": "no-id"}, {"id": None}, "42", None])
def test_customer_without_id_is_invalid(row):
    with pytest.raises(InvalidData):
        Customer.from_payload(row)


def test_order_customer_id_falls_back_to_top_level_field():
    o = Order.from_payload({"id": 1, "customer_id": 7, "financial_status": "paid", "total_price": "5.00"})
    assert o.customer_id == "7"
    assert o.total_price == "5.00"


@pytest.mark.parametrize("row", ["x", 5, None, ["id", 1]])
def test_order_that_is_not_an_object_is_invalid(row):
    with pytest.raises(InvalidData):
        Order.from_payload(row)
