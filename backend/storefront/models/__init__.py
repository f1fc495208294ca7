from .customers import Customer, CustomerAddress
from .orders import Order, OrderItem
from .catalog import Category, Product

__all__ = [
    'Customer', 'CustomerAddress',
    'Order', 'OrderItem',
    'Category', 'Product',
]
