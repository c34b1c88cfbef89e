"""QuoteLine model for quote line items."""
from sqlalchemy import Column, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from tunik.database import Base


class QuoteLine(Base):
    """
    Quote Line (Detalle de Cotización).

    unit_price is a snapshot taken when the line is written; later changes to
    the service price do not alter existing quotes.
    """

    __tablename__ = 'quote_line'

    quote_id = Column(Integer, ForeignKey('quote.id'), primary_key=True)
    service_id = Column(Integer, ForeignKey('service.id'), primary_key=True)
    unit_price = Column(Numeric(10, 2), nullable=False)

    service = relationship('Service')

    def __repr__(self):
        return f"<QuoteLine(quote_id={self.quote_id}, service_id={self.service_id}, unit_price={self.unit_price})>"
