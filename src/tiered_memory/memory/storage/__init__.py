# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Record store implementations."""

from tiered_memory.memory.storage.local import InMemoryRecordStore

__all__ = ["InMemoryRecordStore"]
