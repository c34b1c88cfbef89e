"""Appointment model (agenda de citas)."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from tunik.database import Base


class Appointment(Base):
    """Workshop appointment for a vehicle."""

    __tablename__ = 'appointment'

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate = Column(String(10), ForeignKey('vehicle.plate'), nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    status = Column(String(50), nullable=False, default='Pendiente')

    # Relationships
    vehicle = relationship('Vehicle')
    lines = relationship('AppointmentLine', viewonly=True, order_by='AppointmentLine.service_id')

    def __repr__(self):
        return f"<Appointment(id={self.id}, plate='{self.plate}', status='{self.status}')>"
