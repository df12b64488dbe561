"""
                Restaurant Storefront

Customer ordering storefront and administrative back office for a single
restaurant: menu browsing, item customization, cart, checkout with a
plain-text order summary for manual relay, and order/menu management.
"""

__version__ = "1.0.0"
