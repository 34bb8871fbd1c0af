# backend/suite/services/base.py
"""
Shared service plumbing for the Suite backend.

Services own the database transaction (repositories only flush) and time
their public operations with ``@BaseService.measure_operation``. Timings go
to Prometheus and to a small per-class table used by tests and debugging.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        if success:
            self.success_count += 1
        else:
            self.failure_count += 1

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate": self.success_count / self.count,
            "avg_time": self.total_time / self.count,
        }


def _record_operation(
    instance: Any,
    operation_name: str,
    elapsed: float,
    success: bool,
    error_type: Optional[str],
) -> None:
    if isinstance(instance, BaseService):
        instance._stats_for(operation_name).add(elapsed, success)

    if elapsed > SLOW_OPERATION_SECONDS and hasattr(instance, "logger"):
        instance.logger.warning(f"Slow operation: {operation_name} took {elapsed:.2f}s")

    try:
        prometheus_metrics.record_service_operation(
            service=instance.__class__.__name__,
            operation=operation_name,
            duration=elapsed,
            status="success" if success else "error",
            error_type=error_type,
        )
    except Exception:
        logger.debug("Could not export metrics for %s", operation_name, exc_info=True)


class BaseService:
    """Base class for services that work against one SQLAlchemy session."""

    # Keyed by service class name, then operation name
    _operation_stats: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success, roll back on any error.

        Database errors are raised as ``ServiceException``; anything else
        (domain exceptions included) is re-raised unchanged.
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Database transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a method and record whether it raised.

        Also usable on classes that are not services (the settlement service
        has no session); those only export to Prometheus.
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                started = time.time()
                success = False
                error_type = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    _record_operation(
                        self, operation_name, time.time() - started, success, error_type
                    )

            return cast(F, wrapper)

        return decorator

    def _stats_for(self, operation: str) -> OperationStats:
        per_class = BaseService._operation_stats.setdefault(self.__class__.__name__, {})
        return per_class.setdefault(operation, OperationStats())

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation counts and timings recorded for this service class."""
        per_class = BaseService._operation_stats.get(self.__class__.__name__, {})
        return {name: stats.summary() for name, stats in per_class.items() if stats.count}

    def reset_metrics(self) -> None:
        BaseService._operation_stats.pop(self.__class__.__name__, None)
