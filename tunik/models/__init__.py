"""Models package - exports all SQLAlchemy models."""
# Reference data
from tunik.models.supplier import Supplier
from tunik.models.product import Product
from tunik.models.service import Service, ServiceCategory
from tunik.models.vehicle import Vehicle
from tunik.models.payment_method import PaymentMethod

# Master-detail models
from tunik.models.order import Order, OrderLine
from tunik.models.appointment import Appointment
from tunik.models.appointment_line import AppointmentLine
from tunik.models.quote import Quote, QuoteStatus
from tunik.models.quote_line import QuoteLine

__all__ = [
    # Reference data
    'Supplier', 'Product', 'Service', 'ServiceCategory', 'Vehicle', 'PaymentMethod',
    # Master-detail
    'Order', 'OrderLine',
    'Appointment', 'AppointmentLine',
    'Quote', 'QuoteStatus', 'QuoteLine',
]
