"""Exception hierarchy for sync and service supervision."""


class AttendanceSyncError(Exception):
    """Base class for all platform errors."""


# =============================================================================
# Sync errors
# =============================================================================


class SyncError(AttendanceSyncError):
    """Raised by the external sync client and sync engine."""


class AuthError(SyncError):
    """Credentials were rejected or no token could be obtained."""


class TransientNetworkError(SyncError):
    """Timeout, connection reset or 5xx-equivalent; safe to retry."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermanentRequestError(SyncError):
    """Malformed request or unexpected response schema; never retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SyncAlreadyRunningError(SyncError):
    """A run for this job name is already in flight."""

    def __init__(self, job_name: str) -> None:
        super().__init__(f"Sync job '{job_name}' is already running")
        self.job_name = job_name


class InvalidSyncWindowError(SyncError):
    """The requested window ends before it starts."""


class UnknownCollectionError(SyncError):
    """No collection is registered under the requested job name."""

    def __init__(self, job_name: str) -> None:
        super().__init__(f"Unknown sync job: {job_name}")
        self.job_name = job_name


# =============================================================================
# Supervisor errors
# =============================================================================


class SupervisorError(AttendanceSyncError):
    """Raised by the service supervisor."""


class ServiceNotFoundError(SupervisorError):
    """No service is registered under the given name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Service {name} not found")
        self.service_name = name


class DuplicateServiceError(SupervisorError):
    """A service with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Service {name} is already registered")
        self.service_name = name


class RegistrationClosedError(SupervisorError):
    """Services can only be registered before the supervisor starts."""


class ServiceStartupError(SupervisorError):
    """A service's start routine failed."""

    def __init__(self, name: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Service {name} failed to start{detail}")
        self.service_name = name
        self.cause = cause


class ServiceRuntimeFailure(SupervisorError):
    """A running service lost its heartbeat or raised during operation."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Service {name} failed at runtime: {reason}")
        self.service_name = name
        self.reason = reason
