"""Service-layer exceptions."""


class InterpreterError(Exception):
    """Raised when the host misuses the interpreter, e.g. an invalid option index."""
