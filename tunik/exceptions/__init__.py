"""Custom exceptions for the Tunik repair-shop API."""


class TunikError(Exception):
    """Base exception for all application errors."""
    category = 'InternalError'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['ok'] = False
        rv['msg'] = self.message
        rv['error'] = self.category
        return rv


class ValidationError(TunikError):
    """Malformed or missing required input."""
    category = 'ValidationError'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class InvalidReferenceError(TunikError):
    """A referenced entity (vehicle, supplier, catalog entry...) does not exist."""
    category = 'InvalidReference'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class EmptyDetailError(TunikError):
    """The operation required at least one detail line and got none."""
    category = 'EmptyDetail'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class ConflictError(TunikError):
    """Uniqueness or cross-field consistency rule violated."""
    category = 'Conflict'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class ReferentialConstraintError(ConflictError):
    """Raised by the storage boundary when a foreign key would be broken."""


class InvalidOperationError(TunikError):
    """Structurally disallowed transition."""
    category = 'InvalidOperation'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class StockViolationError(TunikError):
    """Raised when a stock adjustment would leave a product below zero."""
    category = 'StockViolation'

    def __init__(self, product_id, current, delta):
        message = (
            f'La operación dejaría stock negativo en producto {product_id}: '
            f'existencia {current}, ajuste {delta}'
        )
        super().__init__(message, 409, {'product_id': product_id})
        self.product_id = product_id
        self.current = current
        self.delta = delta


class NotFoundError(TunikError):
    """Exception raised when a resource is not found."""
    category = 'NotFound'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InternalError(TunikError):
    """Unexpected storage failure."""

    def __init__(self, message="Error en el servidor", payload=None):
        super().__init__(message, 500, payload)
