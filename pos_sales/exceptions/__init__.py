"""Custom exceptions for the POS sales application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(PosError):
    """Raised for malformed or missing request input."""
    def __init__(self, message="Invalid request", payload=None):
        super().__init__(message, 400, payload)


class BusinessLogicError(PosError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, available, requested, product_id=None):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
        message = (
            f'Insufficient stock for product "{product_name}". '
            f'Available: {available}, Requested: {requested}'
        )
        payload = {
            'product_id': product_id,
            'product_name': product_name,
            'available': available,
            'requested': requested,
        }
        super().__init__(message, payload=payload)


class AlreadyCancelledError(BusinessLogicError):
    """Raised when cancelling a sale that is already cancelled."""
    def __init__(self, sale_id):
        self.sale_id = sale_id
        super().__init__(f'Sale #{sale_id} is already cancelled', payload={'sale_id': sale_id})


class InternalError(PosError):
    """Persistence or infrastructure failure. The message never carries internal detail."""
    def __init__(self, message="Internal error while processing the request"):
        super().__init__(message, 500)
