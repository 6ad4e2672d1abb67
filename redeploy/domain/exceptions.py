"""
Domain Exceptions

Architectural Intent:
- One exception per failure class of a deployment run
- Raised inside the deployment use case and converted into a failed
  DeploymentResult at its single top-level handler
- Adapters return booleans/optionals; only cancellation and environment
  errors travel through them as exceptions
"""

from typing import Optional


class DeploymentError(Exception):
    """Base exception for deployment failures."""


class SourceNotFoundError(DeploymentError):
    def __init__(self, source_path: str):
        super().__init__(f"Source path does not exist: {source_path}")
        self.source_path = source_path


class ServiceControlError(DeploymentError):
    """Service did not reach the requested state after all retry attempts."""


class BackupError(DeploymentError):
    pass


class TransferError(DeploymentError):
    pass


class VerificationError(DeploymentError):
    def __init__(self, reason: str, relative_path: Optional[str] = None):
        super().__init__(f"File verification failed: {reason}")
        self.reason = reason
        self.relative_path = relative_path


class DeploymentInProgressError(DeploymentError):
    def __init__(self, destination_path: str):
        super().__init__(
            f"Another deployment to {destination_path} is already running"
        )
        self.destination_path = destination_path


class OperationCancelledError(Exception):
    """
    Raised when the run's cancellation token fires.

    Not a DeploymentError. Retry loops and adapters re-raise it instead of
    counting it as a failed attempt.
    """

    def __init__(self, message: str = "Operation was cancelled"):
        super().__init__(message)
