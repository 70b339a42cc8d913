"""
Typed failures of the training engine.

Every error carries the HTTP status it maps to, so routes let them propagate
and the single handler registered in main.py renders them.
"""

from typing import Any, Dict, Optional


class TrainingError(Exception):
    """Base class for every failure the progression engine reports."""

    status_code: int = 400
    retryable: bool = False

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        return {
            "detail": self.detail,
            "error": type(self).__name__,
            "retryable": self.retryable,
        }


class ValidationError(TrainingError):
    """Malformed input to a gate or the grader. Nothing was mutated."""

    status_code = 422


class PersistenceError(TrainingError):
    """The entity store rejected a read or write. Safe to retry the same action."""

    status_code = 503
    retryable = True


class NotFoundError(TrainingError):
    """Assignment, course, module or template id did not resolve."""

    status_code = 404


class LockedAccessError(TrainingError):
    """The module's predecessor is not completed yet."""

    status_code = 409

    def __init__(self, module_id: str, redirect_module_id: Optional[str] = None):
        super().__init__(f"Module '{module_id}' is locked until the previous module is completed")
        self.module_id = module_id
        self.redirect_module_id = redirect_module_id

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["module_id"] = self.module_id
        payload["redirect_module_id"] = self.redirect_module_id
        return payload
