"""Sales blueprint: sale creation and cancellation endpoints (JSON)."""
from flask import Blueprint, request, jsonify

from pos_sales.database import get_session
from pos_sales.exceptions import PosError, ValidationError
from pos_sales.services.sales_service import create_sale
from pos_sales.services.sale_cancel_service import cancel_sale
from pos_sales.blueprints.metrics import sales_created_total, sales_cancelled_total, sale_failures_total

sales_bp = Blueprint('sales', __name__, url_prefix='/sales')

# Errors are rendered by the PosError handler registered in create_app


def _record_failure(operation: str, error: PosError) -> None:
    sale_failures_total.labels(operation=operation, reason=type(error).__name__).inc()


@sales_bp.route('', methods=['POST'])
def create():
    """
    Create a sale.

    Body: {"items": [{"id": int, "quantity": int}], "date": "ISO-8601" (optional)}

    Returns:
        200: {"data": sale} with lines and products
        400: invalid items, invalid date or insufficient stock
        404: unknown product
        500: internal error
    """
    payload = request.get_json(silent=True)
    db_session = get_session()

    try:
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object with an "items" list')

        sale = create_sale(payload.get('items'), db_session, sale_date=payload.get('date'))
    except PosError as e:
        _record_failure('create', e)
        raise

    sales_created_total.inc()
    return jsonify({'data': sale.to_dict()}), 200


@sales_bp.route('/<sale_id>/cancel', methods=['POST'])
def cancel(sale_id):
    """
    Cancel a sale and restock its lines.

    Returns:
        200: {"data": sale} with cancelled=true
        400: malformed id or sale already cancelled
        404: unknown sale
        500: internal error
    """
    db_session = get_session()

    try:
        sale = cancel_sale(sale_id, db_session)
    except PosError as e:
        _record_failure('cancel', e)
        raise

    sales_cancelled_total.inc()
    return jsonify({'data': sale.to_dict()}), 200
