"""Error types raised by the service layer."""


class CabinetError(Exception):
    """Base class for every error the services raise on purpose."""


class ValidationError(CabinetError):
    """Missing or out-of-range input. Nothing was written."""


class NotFoundError(CabinetError):
    """A referenced student, activity or schedule entry does not exist."""


class ParseError(CabinetError):
    """An import document or spreadsheet could not be read."""


class ConflictError(CabinetError):
    """The student is already in that schedule cell."""
