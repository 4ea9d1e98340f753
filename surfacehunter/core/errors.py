"""
Error taxonomy for analysis passes.
Every failure surfaced to a caller is a ScanError subclass.
"""


class ScanError(Exception):
    pass


class InputError(ScanError):
    """The archive is not a valid zip or the target URL is malformed."""


class PolicyViolation(ScanError):
    """An outbound fetch was refused: SSRF block, scheme, redirect or oversized body."""


class DecodeError(ScanError):
    """An archive member could not be read as text."""

    def __init__(self, member: str, reason: str = "not valid text"):
        super().__init__(f"{member}: {reason}")
        self.member = member
        self.reason = reason


class FetchError(ScanError):
    """Transport failure or non-success status while fetching."""

    def __init__(self, url: str, reason: str, status: int = None):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class AnalysisFailure(ScanError):
    """Unexpected internal error during a pass."""
