# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Exceptions raised by the memory subsystem.

All errors are raised synchronously to the immediate caller. Nothing in this
package retries; callers decide whether an operation is worth repeating.
"""

from typing import Optional


class TieredMemoryError(Exception):
    """Base exception for memory subsystem errors."""

    pass


class AuthenticationRequired(TieredMemoryError):
    """No actor could be resolved for an operation that requires one."""

    def __init__(self, operation: Optional[str] = None):
        self.operation = operation
        if operation:
            message = f"Authentication required for '{operation}'"
        else:
            message = "Authentication required"
        super().__init__(message)


class MemoryNotFoundError(TieredMemoryError):
    """Memory does not exist or does not belong to the caller."""

    def __init__(self, memory_id: str):
        self.memory_id = memory_id
        super().__init__(f"Memory '{memory_id}' not found")


class MemoryValidationError(TieredMemoryError, ValueError):
    """Input failed validation (confidence range, unknown enum value, ...)."""

    pass
