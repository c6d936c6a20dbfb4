class RentalsError(Exception):
    """Base class for errors raised by the rentals core"""

    status_code = 500


class ConfigurationError(RentalsError):
    """Required configuration is missing or inconsistent; fatal at startup"""


class NotFoundError(RentalsError):
    status_code = 404


class InvalidInputError(RentalsError):
    status_code = 400


class ConflictError(RentalsError):
    status_code = 409


class StorageError(RentalsError):
    """An object storage upload failed"""

    status_code = 502
