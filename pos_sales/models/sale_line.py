"""Sale Line model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from pos_sales.database import Base


class SaleLine(Base):
    """Sale Line. `unit_price` is the product price captured when the sale was made."""

    __tablename__ = 'sale_line'
    __table_args__ = (
        CheckConstraint('qty > 0', name='ck_sale_line_qty_positive'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sale.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='lines')
    product = relationship('Product')

    def __repr__(self):
        return f"<SaleLine(id={self.id}, product_id={self.product_id}, qty={self.qty})>"

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'product_id': self.product_id,
            'quantity': self.qty,
            'unit_price': float(self.unit_price),
            'line_total': float(self.line_total),
            'product': self.product.to_dict() if self.product else None,
        }
