# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Helpers shared by the short-term and long-term providers."""

from contextlib import nullcontext
from typing import Any, ContextManager, Iterable, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from tiered_memory.exceptions import MemoryValidationError
from tiered_memory.memory.observability.metrics import MemoryMetrics
from tiered_memory.memory.schemas import Importance, MemoryType

ModelT = TypeVar("ModelT", bound=BaseModel)


def coerce_input(
    model_cls: type[ModelT], data: Union[ModelT, Mapping[str, Any]]
) -> ModelT:
    """Build a validated input model from a model instance or a mapping.

    Raises:
        MemoryValidationError: If the mapping does not validate.
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise MemoryValidationError(str(e)) from e


def coerce_memory_types(
    memory_types: Optional[Iterable[Union[MemoryType, str]]],
) -> Optional[list[MemoryType]]:
    """Normalize an optional collection of memory types.

    Raises:
        MemoryValidationError: On a value outside the enumeration.
    """
    if not memory_types:
        return None
    try:
        return [MemoryType(t) for t in memory_types]
    except ValueError as e:
        raise MemoryValidationError(str(e)) from e


def coerce_importance(
    importance: Optional[Union[Importance, str]],
) -> Optional[Importance]:
    """Normalize an optional importance threshold."""
    if importance is None:
        return None
    try:
        return Importance(importance)
    except ValueError as e:
        raise MemoryValidationError(str(e)) from e


def validate_unit(name: str, value: float) -> float:
    """Ensure a float lies within [0, 1].

    Raises:
        MemoryValidationError: If it does not.
    """
    if not 0.0 <= value <= 1.0:
        raise MemoryValidationError(f"{name} must be between 0.0 and 1.0, got {value}")
    return value


def resolve_limit(limit: Optional[int], default: int) -> int:
    """Caller limit, or default when none was given.

    Raises:
        MemoryValidationError: If limit is negative.
    """
    if limit is None:
        return default
    if limit < 0:
        raise MemoryValidationError(f"limit must be non-negative, got {limit}")
    return limit

def timed(metrics: Optional[MemoryMetrics], operation: str) -> ContextManager[None]:
    """Latency timer for operation, or a no-op when metrics are disabled."""
    if metrics is None:
        return nullcontext()
    return metrics.timed(operation)
