"""
Exception types raised by the reporting layer.

The API boundary maps each type onto an HTTP status code; the CLI prints the
message and exits non-zero.
"""

from __future__ import annotations


class ReportingError(Exception):
    """Base class for every error raised by this package."""


class InvalidParameterError(ReportingError, ValueError):
    """A report was requested with an out-of-range or malformed parameter."""


class MissingReferenceDataError(ReportingError):
    """A sales row has no gross price or deduction for its fiscal year.

    ``missing`` holds ``(kind, code, fiscal_year)`` tuples, where *kind* is one
    of ``gross_price``, ``pre_invoice_deduction`` or ``post_invoice_deduction``.
    """

    def __init__(self, missing: list[tuple[str, str, int]]) -> None:
        self.missing = missing
        sample = ", ".join(f"{k}({c}, FY{fy})" for k, c, fy in missing[:5])
        more = f" and {len(missing) - 5} more" if len(missing) > 5 else ""
        super().__init__(f"Missing reference data: {sample}{more}")


class DataIntegrityError(ReportingError):
    """A reference table violates its uniqueness invariant."""


class DataSourceError(ReportingError):
    """The external data source could not be read."""
