"""Payment method model."""
from sqlalchemy import Column, Integer, String
from tunik.database import Base


class PaymentMethod(Base):
    """Payment method (método de pago)."""

    __tablename__ = 'payment_method'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<PaymentMethod(id={self.id}, name='{self.name}')>"
