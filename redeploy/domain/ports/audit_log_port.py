"""
Audit Log Port

Architectural Intent:
- Append-only, line-oriented record of deployment milestones
- Writers only append; nothing rewrites existing lines
"""

from typing import List, Protocol, runtime_checkable


@runtime_checkable
class AuditLogPort(Protocol):
    def write(self, message: str) -> None: ...

    def tail(self, lines: int = 50) -> List[str]: ...
