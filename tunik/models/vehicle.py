"""Vehicle model."""
from sqlalchemy import Column, String
from tunik.database import Base


class Vehicle(Base):
    """Customer vehicle, identified by its plate."""

    __tablename__ = 'vehicle'

    plate = Column(String(10), primary_key=True)
    model = Column(String(50), nullable=False)
    color = Column(String(30), nullable=True)
    owner_document = Column(String(20), nullable=True)

    def __repr__(self):
        return f"<Vehicle(plate='{self.plate}', model='{self.model}')>"
