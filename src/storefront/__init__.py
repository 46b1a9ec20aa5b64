"""Storefront - catalog, cart, checkout and back-office API"""

__version__ = "1.0.0"
