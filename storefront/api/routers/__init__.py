from . import carts
from . import items
from . import orders
from . import users

__all__ = ["carts", "items", "orders", "users"]
