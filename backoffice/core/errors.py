class BackofficeError(Exception):
    """Base class for domain errors raised by the services."""


class ValidationError(BackofficeError, ValueError):
    """Caller contract violation, raised before anything is written."""


class InvalidStatusTransition(ValidationError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order status from '{current}' to '{target}'")


class NotFoundError(BackofficeError):
    pass


class ImmutableRecordError(BackofficeError):
    pass


class VatRateNotFound(BackofficeError):
    def __init__(self, country_id: int):
        self.country_id = country_id
        super().__init__(f"VAT rate not found for country ID: {country_id}")
