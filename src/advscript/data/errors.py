"""Custom exceptions for data loading and validation."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when JSON files are missing or invalid."""


class DataValidationError(DataError):
    """Raised when JSON content fails structural validation."""


class DataReferenceError(DataError):
    """Raised when a world file references scripts or entities that do not exist."""


class ScriptLoadError(DataValidationError):
    """Raised when a serialized script graph or catalog record is malformed."""
