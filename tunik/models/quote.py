"""Quote model for cotizaciones."""
import enum
from sqlalchemy import Column, Integer, String, Date, ForeignKey
from sqlalchemy.orm import relationship
from tunik.database import Base


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    PENDING = "Pendiente"
    APPROVED = "Aprobado"
    CANCELED = "Cancelado"


class Quote(Base):
    """
    Quote (Cotización) for a vehicle.

    A quote may be generated from an appointment, in which case both share
    the same vehicle and the appointment's services seed the quote lines.
    """

    __tablename__ = 'quote'

    id = Column(Integer, primary_key=True, autoincrement=True)
    plate = Column(String(10), ForeignKey('vehicle.plate'), nullable=False)
    payment_method_id = Column(Integer, ForeignKey('payment_method.id'), nullable=False)
    status = Column(String(20), nullable=False, default=QuoteStatus.PENDING.value)
    quote_date = Column(Date, nullable=False)
    appointment_id = Column(Integer, ForeignKey('appointment.id'), nullable=True)

    # Relationships
    vehicle = relationship('Vehicle')
    payment_method = relationship('PaymentMethod')
    appointment = relationship('Appointment')
    lines = relationship('QuoteLine', viewonly=True, order_by='QuoteLine.service_id')

    def __repr__(self):
        return f"<Quote(id={self.id}, plate='{self.plate}', status='{self.status}')>"
