class TrayWayError(Exception):
    """Base class for application errors."""


class UpdateError(TrayWayError):
    """Release feed or installer download failed."""
