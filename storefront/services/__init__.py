"""
                        Services Module

Business logic behind the storefront and the admin console. External
collaborators follow one pattern: an abstract base class, a development
implementation and a production implementation chosen by ENV_MODE.

Services:
    - cart: Cart aggregator and its storage (memory / Redis)
    - customization: Item customization engine
    - catalog: Menu, categories, order types, payment methods, store settings
    - checkout: Order submission and plain-text summary
    - orders: Admin order queries and status changes
    - auth: Admin credential checks (bcrypt)
    - realtime: Order change feed (memory / Redis pub/sub)
    - storage: Menu image storage (local / hosted bucket)
    - ledger: Excel ledger of submitted orders
    - store_hours: Open/closed resolution from hours and the manual override
"""

from storefront.services.ledger import OrderLedger

__all__ = ["OrderLedger"]
