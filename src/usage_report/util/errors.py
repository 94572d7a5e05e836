from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    INVENTORY_ERROR = 3
    STORE_ERROR = 4
    RUNTIME_ERROR = 5


class UsageReportError(Exception):
    """Base error for the usage report pipeline."""


class ConfigError(UsageReportError):
    """Raised for configuration or argument issues."""


class InventoryError(UsageReportError):
    """Raised when an inventory snapshot cannot be read or parsed."""


class StoreError(UsageReportError):
    """Raised when the report history store cannot be opened or written."""


class ExportError(UsageReportError):
    """Raised when exporting artifacts fails."""


class ZeroQuotaError(UsageReportError, ZeroDivisionError):
    """Raised when a space percentage is requested against a zero org quota."""

    def __init__(self, org_name: str, space_name: str) -> None:
        super().__init__(
            f"Org {org_name} has a memory quota of 0 MB; cannot compute quota share for space {space_name}"
        )
        self.org_name = org_name
        self.space_name = space_name


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, InventoryError):
        return int(ExitCode.INVENTORY_ERROR)
    if isinstance(exc, StoreError):
        return int(ExitCode.STORE_ERROR)
    if isinstance(exc, (ExportError, UsageReportError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
