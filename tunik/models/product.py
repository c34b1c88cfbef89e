"""Product model."""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from tunik.database import Base


class Product(Base):
    """
    Product bought from a supplier.

    on_hand_qty is the stock ledger: the only authoritative inventory count.
    It is changed exclusively through services.stock_service.adjust_stock.
    """

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('on_hand_qty >= 0', name='ck_product_on_hand_non_negative'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    on_hand_qty = Column(Integer, nullable=False, default=0)

    # Relationships
    supplier = relationship('Supplier', back_populates='products')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', on_hand_qty={self.on_hand_qty})>"
