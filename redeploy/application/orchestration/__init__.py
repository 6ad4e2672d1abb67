"""
Application Orchestration Package

Architectural Intent:
- Contains workflow building blocks shared by use cases
- Bounded retry with interruptible delay for service control steps
"""

from redeploy.application.orchestration.retry_policy import RetryPolicy

__all__ = ["RetryPolicy"]
