"""Shopify VIP customer tagging: spend sweep + order webhooks."""

__version__ = "1.0.0"
