"""
Typed exception hierarchy for the revenue kernel.

Every error carries a ``code`` class attribute (machine-readable, API-safe)
and keeps its context as attributes, so callers catch by type and read
structured data instead of parsing messages.

    RevenueKernelError (base)
    |
    +-- CurrencyError
    |   +-- CurrencyMismatchError
    |
    +-- InputError
    |   +-- UnknownAllocationMethodError
    |   +-- UnknownProjectTypeError
    |
    +-- ConfigurationError

The allocation engine itself does not raise for malformed business data
(negative hours, missing rates, unknown invoice bases); it degrades
deterministically. These exceptions cover contract violations by the
caller and failures in the collaborators that assemble engine input.
"""


class RevenueKernelError(Exception):
    """Base exception for all revenue kernel errors."""

    code: str = "REVENUE_KERNEL_ERROR"


# Currency-related exceptions


class CurrencyError(RevenueKernelError):
    """Base exception for currency errors."""

    code: str = "CURRENCY_ERROR"


class CurrencyMismatchError(CurrencyError):
    """Money arithmetic or aggregation mixed two currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str, operation: str = "combine"):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"Cannot {operation} Money with different currencies: {left} and {right}"
        )


# Input contract exceptions


class InputError(RevenueKernelError):
    """Base exception for engine input contract violations."""

    code: str = "INPUT_ERROR"


class UnknownAllocationMethodError(InputError):
    """The caller asked for an allocation method with no strategy."""

    code: str = "UNKNOWN_ALLOCATION_METHOD"

    def __init__(self, method: object):
        self.method = str(method)
        super().__init__(f"Unknown allocation method: {method!r}")


class UnknownProjectTypeError(InputError):
    """A mirrored project carries a project type label with no mapping."""

    code: str = "UNKNOWN_PROJECT_TYPE"

    def __init__(self, label: object, project_id: object = None):
        self.label = str(label)
        self.project_id = project_id
        super().__init__(
            f"Unknown project type {label!r} on project {project_id}"
        )


# Configuration exceptions


class ConfigurationError(RevenueKernelError):
    """Configuration file is structurally invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")
