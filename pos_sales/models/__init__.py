"""Models package - exports all SQLAlchemy models."""
from pos_sales.models.product import Product
from pos_sales.models.sale import Sale
from pos_sales.models.sale_line import SaleLine
from pos_sales.models.stock_move import StockMove, StockMoveType, StockReferenceType
from pos_sales.models.stock_move_line import StockMoveLine

__all__ = [
    'Product',
    'Sale', 'SaleLine',
    'StockMove', 'StockMoveType', 'StockReferenceType', 'StockMoveLine',
]
