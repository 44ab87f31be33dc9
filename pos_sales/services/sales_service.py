"""
Sales service with transactional logic.
Handles sale creation: validation, totals, line items and stock debits.
"""
import logging
from decimal import Decimal
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple

from sqlalchemy.orm import selectinload

from pos_sales.models import Product, Sale, SaleLine, StockMoveType, StockReferenceType
from pos_sales.exceptions import PosError, NotFoundError, InsufficientStockError, InternalError
from pos_sales.schemas import SaleItemIn, parse_sale_request
from pos_sales.services.stock_service import lock_products, debit_stock, record_stock_move

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def create_sale(items, session, sale_date: Optional[Any] = None) -> Sale:
    """
    Create a sale, its lines, and debit stock in a single transaction.

    Every entry is validated (existence, stock) before anything is written.
    Any failure after that rolls back the whole sale: no header, no lines,
    no stock change.

    Args:
        items: List of {'id': int, 'quantity': int} in request order
        session: SQLAlchemy session
        sale_date: Optional datetime or ISO-8601 string; defaults to now

    Returns:
        The created Sale with lines and products loaded

    Raises:
        ValidationError: malformed items or date
        NotFoundError: unknown product id
        InsufficientStockError: not enough stock for an entry
        InternalError: persistence failure
    """
    request = parse_sale_request({'items': items, 'date': sale_date})

    # 1. Lock products and validate every entry
    try:
        products = lock_products(session, [item.id for item in request.items])
        lines_data, sale_total = _validate_items(request.items, products)
    except PosError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Error reading products for sale: {e}", exc_info=True)
        raise InternalError('Internal error while processing the sale') from e

    # 2. Write sale, lines, stock debits and journal
    try:
        sale = Sale(
            date=request.date or datetime.now(),
            total=sale_total,
            cancelled=False
        )
        session.add(sale)
        session.flush()
        sale_id = sale.id

        sale_lines = []
        for line in lines_data:
            sale_line = SaleLine(
                sale_id=sale_id,
                product_id=line['product'].id,
                qty=line['qty'],
                unit_price=line['unit_price'],
                line_total=line['line_total']
            )
            session.add(sale_line)
            sale_lines.append(sale_line)
            debit_stock(session, line['product'], line['qty'])

        record_stock_move(session, StockMoveType.OUT, StockReferenceType.SALE, sale_id, sale_lines)

        session.commit()

    except PosError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Error creating sale: {e}", exc_info=True)
        raise InternalError('Internal error while processing the sale') from e

    logger.info(f"Sale #{sale_id} created: {len(lines_data)} lines, total {sale_total}")
    return load_sale(session, sale_id)


def load_sale(session, sale_id: int) -> Optional[Sale]:
    """Read a sale with its lines and each line's product."""
    return session.query(Sale).options(
        selectinload(Sale.lines).selectinload(SaleLine.product)
    ).filter(Sale.id == sale_id).populate_existing().first()


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _validate_items(
    items: List[SaleItemIn],
    products: Dict[int, Product]
) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Check entries in request order and price them at the current sale price.

    Repeated entries for one product are checked against their running sum.
    """
    lines_data = []
    sale_total = Decimal('0.00')
    requested = {}

    for item in items:
        product = products.get(item.id)
        if not product:
            raise NotFoundError(f'Product with ID {item.id} not found', payload={'product_id': item.id})

        requested[item.id] = requested.get(item.id, 0) + item.quantity
        if product.stock_on_hand < requested[item.id]:
            raise InsufficientStockError(
                product.display_name,
                product.stock_on_hand,
                requested[item.id],
                product_id=product.id
            )

        unit_price = Decimal(str(product.sale_price))
        line_total = (unit_price * item.quantity).quantize(CENT)
        lines_data.append({
            'product': product,
            'qty': item.quantity,
            'unit_price': unit_price,
            'line_total': line_total
        })
        sale_total += line_total

    return lines_data, sale_total.quantize(CENT)
