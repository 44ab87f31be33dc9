"""Sale model."""
from sqlalchemy import Column, BigInteger, Integer, Boolean, Numeric, DateTime, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pos_sales.database import Base


class Sale(Base):
    """Sale header. `cancelled` moves from False to True once and never back."""

    __tablename__ = 'sale'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    total = Column(Numeric(10, 2), nullable=False)
    cancelled = Column(Boolean, nullable=False, default=False, server_default=false())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    lines = relationship('SaleLine', back_populates='sale', order_by='SaleLine.id')

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, cancelled={self.cancelled})>"

    def to_dict(self):
        """Convert to dictionary, including lines and their products."""
        return {
            'id': self.id,
            'date': self.date.isoformat() if self.date else None,
            'total': float(self.total),
            'cancelled': self.cancelled,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'lines': [line.to_dict() for line in self.lines],
        }
