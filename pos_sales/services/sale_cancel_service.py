"""Service for cancelling sales with stock reversal."""
import logging
from datetime import datetime

from sqlalchemy import update, false
from sqlalchemy.orm import selectinload

from pos_sales.models import Sale, StockMoveType, StockReferenceType
from pos_sales.exceptions import (
    PosError, ValidationError, NotFoundError, AlreadyCancelledError, InternalError
)
from pos_sales.schemas import MAX_ID
from pos_sales.services.sales_service import load_sale
from pos_sales.services.stock_service import lock_products, restock_product, record_stock_move

logger = logging.getLogger(__name__)


def cancel_sale(sale_id, session) -> Sale:
    """
    Cancel a sale and put its quantities back into stock.

    Steps:
    1. Validate the id and load the sale (locked) with its lines
    2. Reject unknown or already cancelled sales
    3. Lock the referenced products in id order
    4. Restock each line's recorded quantity
    5. Flip the cancelled flag (guarded against a concurrent cancel)
    6. Write the IN stock journal entry and commit

    Stock is restored from SaleLine.qty only; current price and stock of the
    product play no part.

    Args:
        sale_id: Sale ID to cancel (int or numeric string)
        session: SQLAlchemy session

    Returns:
        The cancelled Sale with lines and products loaded

    Raises:
        ValidationError: missing or malformed id
        NotFoundError: no sale with that id
        AlreadyCancelledError: sale was already cancelled
        InternalError: persistence failure (everything is rolled back)
    """
    sale_id = _parse_sale_id(sale_id)

    try:
        # Step 1-2: Load sale and validate state
        sale = session.query(Sale).options(
            selectinload(Sale.lines)
        ).filter(Sale.id == sale_id).with_for_update().populate_existing().first()

        if not sale:
            raise NotFoundError(f'Sale with ID {sale_id} not found', payload={'sale_id': sale_id})

        if sale.cancelled:
            raise AlreadyCancelledError(sale_id)

        lines = list(sale.lines)
    except PosError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Error loading sale #{sale_id} for cancellation: {e}", exc_info=True)
        raise InternalError('Internal error while cancelling the sale') from e

    try:
        # Step 3: Same lock order as sale creation
        lock_products(session, [line.product_id for line in lines])

        # Step 4: Restock
        restocked = []
        for line in lines:
            if not restock_product(session, line.product_id, line.qty):
                logger.warning(
                    f"Product {line.product_id} of sale #{sale_id} no longer exists, skipping restock"
                )
                continue
            restocked.append(line)

        # Step 5: Mark as cancelled
        _mark_cancelled(session, sale_id)

        # Step 6: Journal and commit
        record_stock_move(
            session, StockMoveType.IN, StockReferenceType.SALE_CANCELLATION, sale_id, restocked
        )
        session.commit()

    except PosError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error(f"Error cancelling sale #{sale_id}: {e}", exc_info=True)
        raise InternalError('Internal error while cancelling the sale') from e

    logger.info(f"Sale #{sale_id} cancelled, {len(restocked)} lines restocked")
    return load_sale(session, sale_id)


def _parse_sale_id(sale_id) -> int:
    """Accept a positive int or a numeric string."""
    if sale_id is None or isinstance(sale_id, bool) or sale_id == '':
        raise ValidationError('The ID of the sale to cancel is required')
    try:
        parsed = int(sale_id)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid sale ID: {sale_id!r}')
    if isinstance(sale_id, float) or not 0 < parsed <= MAX_ID:
        raise ValidationError(f'Invalid sale ID: {sale_id!r}')
    return parsed


def _mark_cancelled(session, sale_id: int) -> None:
    """Set cancelled=True only if it is still False."""
    result = session.execute(
        update(Sale)
        .where(Sale.id == sale_id, Sale.cancelled == false())
        .values(cancelled=True, cancelled_at=datetime.now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyCancelledError(sale_id)
