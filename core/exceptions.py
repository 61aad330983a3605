class LunchLitError(Exception):
    """Base class for application errors."""


class InvalidPermissionError(LunchLitError):
    """Raised when a permission string is not one of the known permissions."""

    def __init__(self, permission):
        self.permission = permission
        super().__init__(f"Unknown permission: {permission!r}")


class ScrapeError(LunchLitError):
    """Raised when a menu page cannot be fetched or is not allowed."""
