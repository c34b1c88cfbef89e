"""Purchase order models (pedidos)."""
from sqlalchemy import (
    Column, Integer, String, Date, Numeric, ForeignKey,
    ForeignKeyConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from tunik.database import Base


class Order(Base):
    """
    Purchase order placed with a supplier.

    Receiving an order adds its line quantities to product stock, so every
    change to the detail set goes through services.order_service.
    """

    __tablename__ = 'orders'
    __table_args__ = (
        # Target of the composite FK on order_line
        UniqueConstraint('id', 'supplier_id', name='uq_orders_id_supplier'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    order_date = Column(Date, nullable=False)
    status = Column(String(50), nullable=False, default='Pendiente')

    # Relationships
    supplier = relationship('Supplier')
    lines = relationship('OrderLine', viewonly=True, order_by='OrderLine.product_id')

    def __repr__(self):
        return f"<Order(id={self.id}, supplier_id={self.supplier_id}, status='{self.status}')>"


class OrderLine(Base):
    """
    Order line (detalle de pedido).

    Bound to its order through (order_id, supplier_id): the supplier of an
    order cannot change while lines exist.
    """

    __tablename__ = 'order_line'
    __table_args__ = (
        ForeignKeyConstraint(
            ['order_id', 'supplier_id'],
            ['orders.id', 'orders.supplier_id'],
            name='fk_order_line_order_supplier'
        ),
    )

    order_id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), primary_key=True)
    supplier_id = Column(Integer, nullable=False)
    qty = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    product = relationship('Product')

    def __repr__(self):
        return f"<OrderLine(order_id={self.order_id}, product_id={self.product_id}, qty={self.qty})>"
