"""
Domain errors raised by the service layer.

Endpoints translate these into HTTP responses:
- NotFoundError     -> 404
- InvalidInputError -> 400
- SchemaError       -> not caught (500), a sheet is missing a required column
"""


class PlacementError(Exception):
    """Base class for all placement workflow errors."""


class NotFoundError(PlacementError):
    """Unknown request id, drive or student."""


class InvalidInputError(PlacementError):
    """Missing or malformed input (empty results, missing required fields)."""


class SchemaError(PlacementError):
    """A target sheet is missing a required column header."""
