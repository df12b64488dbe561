"""HTTP routers: customer storefront and admin back office."""

from storefront.api import admin, store

__all__ = ["admin", "store"]
