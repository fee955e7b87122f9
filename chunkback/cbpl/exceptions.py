"""CBPL subsystem exceptions."""


class CBPLError(Exception):
    """Base class for CBPL errors."""


class CatalogError(CBPLError):
    """Command catalog definitions are malformed."""


class ParseError(CBPLError):
    """A recognized directive is missing a required operand."""

    def __init__(self, message: str, *, line: int, column: int) -> None:
        super().__init__(f"Parse error at line {line}, column {column}: {message}")
        self.message = message
        self.line = line
        self.column = column
