from __future__ import annotations


class ActivityImportError(Exception):
    """Base class for every failure raised by the import pipeline."""


class SchemaError(ActivityImportError):
    """The source lacks a required header or column."""


class ParseError(ActivityImportError):
    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"Error parsing line {line_number}: {message}"
        super().__init__(message)


class OrphanReferenceError(ActivityImportError):
    """A sub-action names a parent that was not imported before it.

    Recorded on the built graph instead of being raised.
    """

    def __init__(self, name: str, parent_name: str) -> None:
        self.name = name
        self.parent_name = parent_name
        super().__init__(f"Sub-action {name!r} references unknown parent {parent_name!r}")


class StoreError(ActivityImportError):
    """A model store operation failed."""


class ReadOnlyElementError(StoreError):
    def __init__(self, element_name: str) -> None:
        self.element_name = element_name
        super().__init__(f"Element {element_name!r} is read-only")


class SourceReadError(ActivityImportError, OSError):
    """The source file could not be opened or decoded."""
