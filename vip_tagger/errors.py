# errors.py
"""
Error taxonomy shared by the Shopify client, the classifier and the webhook path.

    ShopifyError
      ├── TransportError   network / timeout talking to Shopify
      └── ApiError         non-2xx response (status, body)
            └── NotFound   404
    InvalidData            malformed order data
    SignatureError         webhook HMAC mismatch
    ConfigError            missing / invalid settings at startup
"""


class ShopifyError(Exception):
    """Base for anything that went wrong talking to the Shopify Admin API."""


class TransportError(ShopifyError):
    pass


class ApiError(ShopifyError):
    """Shopify API error with status code and body"""
    def __init__(self, message: str, status: int = None, body=None):
        super().__init__(message)
        self.status = status
        self.body = body


class NotFound(ApiError):
    pass


class InvalidData(ValueError):
    pass


class SignatureError(Exception):
    pass


class ConfigError(RuntimeError):
    pass
