from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from ..core.exceptions import DomainError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """Outcome of a use case as seen by the caller.

    Domain failures never escape as exceptions past `run_action`; they come
    back as `success=False` with a human readable message.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ActionResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = "domain_error") -> "ActionResult[T]":
        return cls(success=False, error=error, error_code=code)


def run_action(fn: Callable[..., T], *args: Any, **kwargs: Any) -> ActionResult[T]:
    try:
        return ActionResult.ok(fn(*args, **kwargs))
    except DomainError as e:
        logger.warning("%s refused: %s", getattr(fn, "__name__", fn), e)
        return ActionResult.fail(str(e), e.code)
