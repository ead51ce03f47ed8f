"""
Import Pipeline Exceptions

Errors raised while turning sheet rows into central profiles.
Row-level problems never leave the row importer; everything here
is what the orchestrator and HTTP layer need to report.
"""


class ImportPipelineError(Exception):
    """Base exception for all import pipeline errors."""
    pass


class ConfigurationError(ImportPipelineError):
    """
    Raised when required settings are missing.

    Fatal before any stage starts.
    """
    def __init__(self, message: str, missing: list = None):
        self.missing = list(missing or [])
        super().__init__(message)


class InvalidRequestError(ImportPipelineError):
    """Raised when the selected rows or column mapping are malformed."""
    pass


class LeadSourceMissingError(ImportPipelineError):
    """
    Raised when a hear_us_from value has no active reference record.

    Carries the statements an operator must run before re-submitting.
    The whole batch is rolled back when this is raised mid-import.
    """
    def __init__(self, message: str, values: list = None, statements: list = None,
                 row_index: int = None):
        self.values = list(values or [])
        self.statements = list(statements or [])
        self.row_index = row_index
        super().__init__(message)


class TransportError(ImportPipelineError):
    """
    Raised when the central database cannot be reached.

    Never retried here; the suggestion is passed back to the caller.
    """
    suggestion = 'Please check your database connection and try again.'

    def __init__(self, message: str, suggestion: str = None):
        if suggestion:
            self.suggestion = suggestion
        super().__init__(message)


class RowImportError(ImportPipelineError):
    """Raised inside the row importer when one row cannot be written."""
    def __init__(self, message: str, row_index: int = None):
        self.row_index = row_index
        super().__init__(message)
