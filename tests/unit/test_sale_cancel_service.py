"""
Unit tests for sale cancellation (restock, terminal cancelled state, rollback).
"""

import pytest
from decimal import Decimal
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from pos_sales.exceptions import (
    ValidationError, NotFoundError, AlreadyCancelledError, InternalError
)
from pos_sales.models import Product, Sale, StockMove, StockMoveType, StockReferenceType
from pos_sales.services import sale_cancel_service
from pos_sales.services.sale_cancel_service import cancel_sale
from pos_sales.services.sales_service import create_sale


def _stock(session, product_id):
    return session.query(Product.stock_on_hand).filter(Product.id == product_id).scalar()


def _is_cancelled(session, sale_id):
    return session.query(Sale.cancelled).filter(Sale.id == sale_id).scalar()


class TestCancelSale:
    """Tests for the happy path."""

    def test_cancel_restores_stock(self, session, product):
        """Sell 3 of 10, cancel -> back to 10 and cancelled."""
        sale = create_sale([{'id': product.id, 'quantity': 3}], session)
        assert _stock(session, product.id) == 7

        cancelled = cancel_sale(sale.id, session)

        assert cancelled.cancelled is True
        assert cancelled.cancelled_at is not None
        assert cancelled.total == Decimal('15.00')
        assert len(cancelled.lines) == 1
        assert _stock(session, product.id) == 10

    def test_restock_uses_recorded_quantity_only(self, session, make_product):
        """Later price and stock changes do not affect the restocked amount."""
        a = make_product(name='A', price='5.00', stock=10)
        b = make_product(name='B', price='1.00', stock=8)
        sale = create_sale([{'id': a.id, 'quantity': 3}, {'id': b.id, 'quantity': 8}], session)

        session.execute(
            text('UPDATE product SET sale_price = 42, stock_on_hand = 50 WHERE id = :id'),
            {'id': a.id}
        )
        session.commit()

        cancel_sale(sale.id, session)

        assert _stock(session, a.id) == 53
        assert _stock(session, b.id) == 8

    def test_repeated_product_lines_are_all_restocked(self, session, product):
        sale = create_sale(
            [{'id': product.id, 'quantity': 2}, {'id': product.id, 'quantity': 5}],
            session
        )
        assert _stock(session, product.id) == 3

        cancel_sale(sale.id, session)

        assert _stock(session, product.id) == 10

    def test_numeric_string_id(self, session, product):
        sale = create_sale([{'id': product.id, 'quantity': 1}], session)

        cancelled = cancel_sale(str(sale.id), session)

        assert cancelled.id == sale.id
        assert cancelled.cancelled is True

    def test_stock_move_in_is_recorded(self, session, product):
        sale = create_sale([{'id': product.id, 'quantity': 4}], session)
        cancel_sale(sale.id, session)

        move = session.query(StockMove).filter(
            StockMove.reference_id == sale.id,
            StockMove.type == StockMoveType.IN
        ).one()
        assert move.reference_type == StockReferenceType.SALE_CANCELLATION
        assert [(l.product_id, l.qty) for l in move.lines] == [(product.id, 4)]


class TestCancelSaleRejections:
    """Rejected cancellations must not change stock."""

    def test_already_cancelled(self, session, product):
        sale = create_sale([{'id': product.id, 'quantity': 3}], session)
        cancel_sale(sale.id, session)
        assert _stock(session, product.id) == 10

        with pytest.raises(AlreadyCancelledError) as exc_info:
            cancel_sale(sale.id, session)

        assert exc_info.value.status_code == 400
        assert _stock(session, product.id) == 10
        assert session.query(StockMove).filter(StockMove.type == StockMoveType.IN).count() == 1

    def test_unknown_sale(self, session):
        with pytest.raises(NotFoundError) as exc_info:
            cancel_sale(12345, session)

        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize('sale_id', [None, '', 'abc', 0, -1, '1.5', 2.0, True, 10**20, '100000000000000000000'])
    def test_invalid_id(self, session, sale_id):
        with pytest.raises(ValidationError):
            cancel_sale(sale_id, session)


class TestCancelSaleAtomicity:
    """Failures roll back every restock of the cancellation."""

    def test_failure_during_restock_rolls_back(self, session, make_product, monkeypatch):
        a = make_product(name='A', stock=10)
        b = make_product(name='B', stock=10)
        sale = create_sale([{'id': a.id, 'quantity': 2}, {'id': b.id, 'quantity': 5}], session)

        real_restock = sale_cancel_service.restock_product
        calls = []

        def flaky_restock(session_, product_id, qty):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError('connection reset')
            return real_restock(session_, product_id, qty)

        monkeypatch.setattr(sale_cancel_service, 'restock_product', flaky_restock)

        with pytest.raises(InternalError) as exc_info:
            cancel_sale(sale.id, session)

        assert exc_info.value.status_code == 500
        assert _stock(session, a.id) == 8
        assert _stock(session, b.id) == 5
        assert _is_cancelled(session, sale.id) is False

    def test_concurrent_cancel_is_detected(self, session, product, monkeypatch):
        """A cancel that lands between our read and our flag update loses."""
        sale = create_sale([{'id': product.id, 'quantity': 3}], session)
        sale_id = sale.id
        real_lock = sale_cancel_service.lock_products

        def lock_then_race(session_, product_ids):
            products = real_lock(session_, product_ids)
            session_.execute(text('UPDATE sale SET cancelled = 1 WHERE id = :id'), {'id': sale_id})
            return products

        monkeypatch.setattr(sale_cancel_service, 'lock_products', lock_then_race)

        with pytest.raises(AlreadyCancelledError):
            cancel_sale(sale_id, session)

        # Our restock was rolled back with the failed cancellation
        assert _stock(session, product.id) == 7

    def test_failure_during_flag_update_rolls_back(self, session, product, monkeypatch):
        """Restocks already applied are undone when the cancelled flag cannot be written."""
        sale = create_sale([{'id': product.id, 'quantity': 3}], session)
        sale_id = sale.id

        def failing_mark(session_, sale_id_):
            raise OperationalError('UPDATE sale SET cancelled', {}, Exception('database is locked'))

        monkeypatch.setattr(sale_cancel_service, '_mark_cancelled', failing_mark)

        with pytest.raises(InternalError) as exc_info:
            cancel_sale(sale_id, session)

        assert exc_info.value.status_code == 500
        assert _stock(session, product.id) == 7
        assert _is_cancelled(session, sale_id) is False
        assert session.query(StockMove).filter(StockMove.type == StockMoveType.IN).count() == 0
