# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Two-tier memory: session-scoped short-term store, durable long-term store."""
