# pyfemint/core/errors.py


class UnsupportedOperationError(NotImplementedError):
    """An assembly operation was requested from an integrator that does not
    implement it. Always a caller programming error."""

    def __init__(self, integrator, method: str):
        self.integrator = type(integrator).__name__
        self.method = method
        super().__init__(f"{self.integrator}.{method}(...) is not implemented "
                         f"for this class.")


class InvalidConfigurationError(ValueError):
    """An integrator (or its call) is configured in a way it cannot honour,
    e.g. an empty sum or a coefficient shape the operation does not support."""
