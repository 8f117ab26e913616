"""
Error types raised by the sample analysis core.
"""


class AnalysisError(Exception):
    """Base class for unrecoverable analysis failures."""


class DecodeError(AnalysisError, ValueError):
    """Raw byte input could not be decoded into 16-bit samples."""

    def __init__(self, byte_length: int):
        self.byte_length = byte_length
        super().__init__(f"odd byte array: {byte_length} bytes cannot form 16-bit samples")


class EmptySeriesError(AnalysisError, ValueError):
    """An operation that needs at least one sample was given none."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation} requires a non-empty sample series")
