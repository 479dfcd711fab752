"""Keyward-Engine exception hierarchy."""


class KeywardError(Exception):
    """Base exception for all Keyward errors."""

    def __init__(self, message: str = "", code: str = "KEYWARD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(KeywardError):
    """Raised when caller input has the wrong shape or range."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")


class DuplicateKeyError(KeywardError):
    """Raised when the store rejects a key that already exists."""

    def __init__(self, message: str = "License key already exists"):
        super().__init__(message, code="DUPLICATE_KEY")


class KeyGenerationExhaustedError(KeywardError):
    """Raised when no unused key could be allocated within the retry bound."""

    def __init__(self, message: str = "Could not allocate a unique license key"):
        super().__init__(message, code="KEY_GENERATION_EXHAUSTED")


class LicenseNotFoundError(KeywardError):
    """Raised when a license cannot be found in the store."""

    def __init__(self, message: str = "License not found"):
        super().__init__(message, code="NOT_FOUND")


class AuthorizationError(KeywardError):
    """Raised when a seller acts on a record they do not own.

    The default message is deliberately the same as for a missing record.
    """

    def __init__(self, message: str = "License not found"):
        super().__init__(message, code="FORBIDDEN")


class ConflictError(KeywardError):
    """Raised when concurrent redemptions keep winning the usage update."""

    def __init__(self, message: str = "License was modified concurrently, try again"):
        super().__init__(message, code="CONFLICT")


class StoreUnavailableError(KeywardError):
    """Raised when the record store times out or cannot be reached."""

    def __init__(self, message: str = "License store unavailable"):
        super().__init__(message, code="STORE_UNAVAILABLE")
