"""Error taxonomy for the timeline engine.

Recoverable errors are handled close to where they happen:
- InvalidCursor: the feed restarts from the first page
- ProviderUnavailable: the source contributes no candidates
- CacheUnavailable: the cache is bypassed and the page is computed live

Job errors are terminal for a single job instance and are reported to the
worker's failure hooks.
"""

from __future__ import annotations


class TimelineError(Exception):
    """Base class for timeline engine errors."""


class InvalidCursor(TimelineError):
    """A pagination cursor could not be decoded."""

    def __init__(self, cursor: str, reason: str = "malformed cursor"):
        self.cursor = cursor
        self.reason = reason
        super().__init__(f"Invalid pagination token: {reason}")


class UserNotFound(TimelineError):
    """The requested user does not exist in the social graph."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ProviderUnavailable(TimelineError):
    """A source provider failed to return candidates."""

    def __init__(self, provider: str, cause: BaseException | None = None):
        self.provider = provider
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Source provider '{provider}' unavailable{detail}")


class CacheUnavailable(TimelineError):
    """The cache store could not be reached."""


class JobError(TimelineError):
    """Base class for refresh job failures."""

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(message)


class JobTimeout(JobError):
    """A job attempt exceeded its wall-clock timeout."""

    def __init__(self, job_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(job_id, f"Job {job_id} timed out after {timeout}s")


class JobRetriesExhausted(JobError):
    """A job failed on its final attempt."""

    def __init__(self, job_id: str, attempts: int, last_error: str | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            job_id, f"Job {job_id} failed after {attempts} attempts: {last_error}"
        )
