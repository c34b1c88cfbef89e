"""Service catalog models."""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from tunik.database import Base


class ServiceCategory(Base):
    """Service category (categoría de servicios)."""

    __tablename__ = 'service_category'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    services = relationship('Service', back_populates='category')

    def __repr__(self):
        return f"<ServiceCategory(id={self.id}, name='{self.name}')>"


class Service(Base):
    """Repair service offered by the shop, with its canonical unit price."""

    __tablename__ = 'service'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    category_id = Column(Integer, ForeignKey('service_category.id'), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    category = relationship('ServiceCategory', back_populates='services')

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', unit_price={self.unit_price})>"
