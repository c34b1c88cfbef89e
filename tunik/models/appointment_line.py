"""AppointmentLine model for services booked on an appointment."""
from sqlalchemy import Column, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from tunik.database import Base


class AppointmentLine(Base):
    """Appointment Line (Detalle de Agenda)."""

    __tablename__ = 'appointment_line'

    appointment_id = Column(Integer, ForeignKey('appointment.id'), primary_key=True)
    service_id = Column(Integer, ForeignKey('service.id'), primary_key=True)
    qty = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)

    service = relationship('Service')

    def __repr__(self):
        return f"<AppointmentLine(appointment_id={self.appointment_id}, service_id={self.service_id}, qty={self.qty})>"
