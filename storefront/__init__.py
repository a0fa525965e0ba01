"""Storefront: carts, anonymous sessions and orders over HTTP."""

__version__ = "0.1.0"
