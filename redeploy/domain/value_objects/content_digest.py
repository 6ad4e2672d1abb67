from dataclasses import dataclass
import re


@dataclass(frozen=True)
class ContentDigest:
    """
    Value Object representing the SHA-256 fingerprint of a file's bytes.
    Ensures that the digest format is valid.
    """
    value: str

    def __post_init__(self):
        if not self._is_valid(self.value):
            raise ValueError(f"Invalid content digest format: {self.value}")

    @staticmethod
    def _is_valid(value: str) -> bool:
        # Lowercase hex SHA-256
        return bool(re.match(r'^[0-9a-f]{64}$', value))

    def __str__(self):
        return self.value
