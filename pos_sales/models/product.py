"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from pos_sales.database import Base


class Product(Base):
    """Product with its on-hand stock."""

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('stock_on_hand >= 0', name='ck_product_stock_non_negative'),
        CheckConstraint('sale_price >= 0', name='ck_product_price_non_negative'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=False)
    stock_on_hand = Column(Integer, nullable=False, default=0, server_default='0')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock_on_hand={self.stock_on_hand})>"

    @property
    def display_name(self):
        """Name shown in messages; falls back to the id when blank."""
        return self.name or str(self.id)

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'sale_price': float(self.sale_price),
            'stock_on_hand': self.stock_on_hand,
        }
