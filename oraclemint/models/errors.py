"""Error types for remote lookups, resolution and bulk sync."""
from typing import Any, Dict, Optional


class OracleMintError(Exception):
    """Base error carrying a machine-readable code."""

    code = "ORACLEMINT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ScryfallError(OracleMintError):
    """The remote catalog could not satisfy a request."""

    code = "SCRYFALL_ERROR"

    def __init__(self, message: str, status: int, details: Optional[str] = None):
        self.status = status
        super().__init__(message, {"status": status, "details": details})


class RequestTimeout(ScryfallError):
    code = "REQUEST_TIMEOUT"

    def __init__(self, message: str = "Request timeout", details: Optional[str] = None):
        super().__init__(message, 408, details or "The request to Scryfall timed out")


class ResolutionFailed(OracleMintError):
    """Remote lookup failed while resolving a name. Distinct from a confirmed miss."""

    code = "RESOLUTION_FAILED"

    def __init__(self, name: str, cause: Exception):
        self.name = name
        super().__init__(
            f"Failed to resolve '{name}': {cause}",
            {"input": name, "cause": type(cause).__name__},
        )


class BulkLineParseError(OracleMintError, ValueError):
    """One line of a bulk file is not a JSON record."""

    code = "PARSE_ERROR"


class SyncRunNotFound(OracleMintError):
    code = "SYNC_RUN_NOT_FOUND"

    def __init__(self, sync_run_id: str):
        self.sync_run_id = sync_run_id
        super().__init__(f"Sync run {sync_run_id} not found", {"sync_run_id": sync_run_id})


class InvalidResumeState(OracleMintError):
    code = "INVALID_RESUME_STATE"

    def __init__(self, sync_run_id: str, status: str):
        self.sync_run_id = sync_run_id
        self.status = status
        super().__init__(
            f"Sync run {sync_run_id} is not paused (status: {status})",
            {"sync_run_id": sync_run_id, "status": status},
        )


class InvalidSyncTransition(OracleMintError):
    code = "INVALID_SYNC_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move sync run from {current} to {target}",
            {"from": current, "to": target},
        )


class SyncFailed(OracleMintError):
    """A sync run hit a structural failure and was marked FAILED."""

    code = "SYNC_FAILED"

    def __init__(self, sync_run_id: str, message: str, processed: int = 0,
                 last_oracle_id: Optional[str] = None):
        self.sync_run_id = sync_run_id
        self.processed = processed
        self.last_oracle_id = last_oracle_id
        super().__init__(
            message,
            {
                "sync_run_id": sync_run_id,
                "processed": processed,
                "last_oracle_id": last_oracle_id,
            },
        )
