from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class CopyResult:
    success: bool
    files_copied: int = 0


class VerificationFailureKind(Enum):
    MISSING = "Missing file"
    MISMATCH = "Hash mismatch"


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of comparing a source tree against its copy.

    Only the first detected failure is kept, even when several workers fail
    concurrently.
    """
    passed: bool
    files_checked: int = 0
    failure_kind: Optional[VerificationFailureKind] = None
    relative_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.passed and self.failure_kind is None:
            raise ValueError("A failed verification needs a failure kind")

    @property
    def reason(self) -> Optional[str]:
        if self.failure_kind is None:
            return None
        return f"{self.failure_kind.value}: {self.relative_path}"

    @staticmethod
    def ok(files_checked: int) -> "VerificationResult":
        return VerificationResult(passed=True, files_checked=files_checked)

    @staticmethod
    def failed(
        kind: VerificationFailureKind,
        relative_path: str,
        files_checked: int = 0,
    ) -> "VerificationResult":
        return VerificationResult(
            passed=False,
            files_checked=files_checked,
            failure_kind=kind,
            relative_path=relative_path,
        )
