"""
Flask CLI commands for database setup.

Commands:
- flask init-db: Create all tables
- flask create-product: Add a product with its initial stock
"""

import click
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import SQLAlchemyError
from pos_sales.database import get_session, create_tables
from pos_sales.models import Product


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_tables()
        click.echo(click.style('Tables created.', fg='green'))

    @app.cli.command('create-product')
    @click.option('--name', prompt=True, help='Product display name')
    @click.option('--price', prompt=True, help='Sale price, e.g. 5.00')
    @click.option('--stock', prompt=True, type=int, help='Initial stock on hand')
    def create_product(name, price, stock):
        """Create a product with its initial stock."""
        try:
            sale_price = Decimal(price).quantize(Decimal('0.01'))
        except InvalidOperation:
            click.echo(click.style(f'Invalid price: {price}', fg='red'))
            return

        if sale_price < 0 or stock < 0:
            click.echo(click.style('Price and stock must not be negative.', fg='red'))
            return

        session = get_session()
        try:
            product = Product(name=name, sale_price=sale_price, stock_on_hand=stock)
            session.add(product)
            session.commit()

            click.echo(click.style('Product created!', fg='green', bold=True))
            click.echo(f'   ID: {product.id}')
            click.echo(f'   Name: {name}')
            click.echo(f'   Price: {sale_price}  Stock: {stock}')

        except SQLAlchemyError as e:
            session.rollback()
            click.echo(click.style(f'Error creating product: {e}', fg='red'))
