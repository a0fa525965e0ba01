# Importing the package registers every table on Base.metadata.
from storefront.models.user import User  # noqa: F401
from storefront.models.item import Item, ItemStatus  # noqa: F401
from storefront.models.cart import Cart, CartLine, CartStatus  # noqa: F401
from storefront.models.order import Order, OrderLine, OrderStatus  # noqa: F401
