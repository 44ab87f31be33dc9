"""Stock helpers shared by sale creation and cancellation."""
import logging
from datetime import datetime
from typing import Dict, Iterable, List

from sqlalchemy import update

from pos_sales.exceptions import InsufficientStockError
from pos_sales.models import (
    Product, SaleLine, StockMove, StockMoveLine, StockMoveType, StockReferenceType
)

logger = logging.getLogger(__name__)


def lock_products(session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """
    Load products FOR UPDATE and return them keyed by id.

    Rows are locked in ascending id order so concurrent sales and cancellations
    touching the same products always acquire locks in the same order.
    SQLite ignores FOR UPDATE; the guarded updates below still hold there.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}

    products = session.query(Product).filter(
        Product.id.in_(ids)
    ).order_by(Product.id).with_for_update().populate_existing().all()
    return {p.id: p for p in products}


def debit_stock(session, product: Product, qty: int) -> None:
    """
    Atomically decrement stock, only if enough is left.

    Raises:
        InsufficientStockError: a concurrent writer consumed the stock after it
            was validated.
    """
    result = session.execute(
        update(Product)
        .where(Product.id == product.id, Product.stock_on_hand >= qty)
        .values(stock_on_hand=Product.stock_on_hand - qty)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = session.query(Product.stock_on_hand).filter(
            Product.id == product.id
        ).scalar()
        logger.warning(
            f"Stock for product {product.id} changed during sale: "
            f"available {available}, requested {qty}"
        )
        raise InsufficientStockError(product.display_name, available, qty, product_id=product.id)


def restock_product(session, product_id: int, qty: int) -> bool:
    """Atomically increment stock. Returns False if the product no longer exists."""
    result = session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_on_hand=Product.stock_on_hand + qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def record_stock_move(
    session,
    move_type: StockMoveType,
    reference_type: StockReferenceType,
    sale_id: int,
    lines: List[SaleLine]
) -> StockMove:
    """Write a stock journal entry with one line per sale line."""
    verb = 'Sale' if reference_type == StockReferenceType.SALE else 'Cancellation of sale'
    move = StockMove(
        date=datetime.now(),
        type=move_type,
        reference_type=reference_type,
        reference_id=sale_id,
        notes=f'{verb} #{sale_id}'
    )
    session.add(move)
    session.flush()

    for line in lines:
        session.add(StockMoveLine(
            stock_move_id=move.id,
            product_id=line.product_id,
            qty=line.qty
        ))
    return move
