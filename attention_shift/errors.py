"""
Exception and warning types raised by the analysis pipeline.
"""


class DataFormatError(ValueError):
    """Trial table is missing required columns or holds unparseable values."""

    def __init__(self, issues: list[str]):
        self.issues = list(issues)
        msg = "\n".join(f"- {issue}" for issue in self.issues)
        super().__init__(f"Trial data validation failed:\n{msg}")


class InsufficientDataError(RuntimeError):
    """Too few factor levels or participants left to fit the models."""


class EmptyGroupWarning(UserWarning):
    """A participant x condition cell has no qualifying trials."""
