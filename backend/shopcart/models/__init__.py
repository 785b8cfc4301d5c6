from .auth import User, SessionToken
from .catalog import Product
from .carts import Cart, CartItem
from .orders import Order, OrderItem, OrderStatus, order_total_cents

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Cart', 'CartItem',
    'Order', 'OrderItem', 'OrderStatus', 'order_total_cents',
]
