# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Memory record schemas.

Defines the closed enumerations (memory type, importance, source) and the
Pydantic models for short-term records, long-term records, the association
edges between long-term records, and consolidation jobs.

Write paths take the ``*Create`` models; the stores hold the full records.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]
UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]


class MemoryType(str, Enum):
    """Kinds of things a memory can describe."""

    USER_PREFERENCE = "user_preference"
    INTERACTION_PATTERN = "interaction_pattern"
    DOMAIN_KNOWLEDGE = "domain_knowledge"
    CONVERSATION_CONTEXT = "conversation_context"
    TASK_HISTORY = "task_history"
    FEEDBACK = "feedback"
    ENTITY_RELATION = "entity_relation"
    PROCESS_KNOWLEDGE = "process_knowledge"

    def __str__(self) -> str:
        """Return the string value for easy serialization."""
        return self.value


class Importance(str, Enum):
    """Importance of a memory.

    Ordering: TEMPORARY < LOW < MEDIUM < HIGH < CRITICAL

    Importance drives short-term TTL, long-term initial strength and decay
    rate, consolidation flagging, and search boosting.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    TEMPORARY = "temporary"

    @property
    def rank(self) -> int:
        """Numeric rank for comparison.

        Returns:
            Integer rank (0-4), CRITICAL highest.
        """
        ranks = {
            Importance.TEMPORARY: 0,
            Importance.LOW: 1,
            Importance.MEDIUM: 2,
            Importance.HIGH: 3,
            Importance.CRITICAL: 4,
        }
        return ranks[self]

    def at_least(self, threshold: "Importance") -> bool:
        """Check if this importance is equal to or above threshold.

        Example:
            >>> Importance.HIGH.at_least(Importance.MEDIUM)
            True
            >>> Importance.LOW.at_least(Importance.MEDIUM)
            False
        """
        return self.rank >= threshold.rank

    @staticmethod
    def higher(a: "Importance", b: "Importance") -> "Importance":
        """Return whichever of a and b ranks higher (b on ties)."""
        return a if a.rank > b.rank else b

    def __str__(self) -> str:
        """Return the string value for easy serialization."""
        return self.value


class MemorySource(str, Enum):
    """Provenance of a memory."""

    EXPLICIT_FEEDBACK = "explicit_feedback"
    IMPLICIT_LEARNING = "implicit_learning"
    TASK_OUTCOME = "task_outcome"
    ERROR_CORRECTION = "error_correction"
    CONVERSATION = "conversation"
    SYSTEM_OBSERVATION = "system_observation"

    def __str__(self) -> str:
        """Return the string value for easy serialization."""
        return self.value


class ConsolidationStatus(str, Enum):
    """Lifecycle of a consolidation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the string value for easy serialization."""
        return self.value


class RelatedEntity(BaseModel):
    """Reference to an arbitrary domain entity."""

    type: str
    id: str
    name: Optional[str] = None


class ShortTermContext(BaseModel):
    """Entities a short-term memory was captured around."""

    conversation_id: Optional[str] = None
    task_id: Optional[str] = None
    contract_id: Optional[str] = None
    vendor_id: Optional[str] = None
    agent_id: Optional[str] = None
    related_entities: list[RelatedEntity] = Field(default_factory=list)


class LongTermContext(BaseModel):
    """Domain tag, links and free-form tags of a long-term memory."""

    domain: Optional[str] = None
    related_memories: list[str] = Field(default_factory=list)
    contract_ids: list[str] = Field(default_factory=list)
    vendor_ids: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class ShortTermMemoryCreate(BaseModel):
    """Input for a short-term write.

    ``expires_at`` is derived from importance when not supplied.
    """

    session_id: str
    memory_type: MemoryType
    content: str
    structured_data: Optional[Any] = None
    context: ShortTermContext = Field(default_factory=ShortTermContext)
    importance: Importance
    confidence: UnitFloat
    source: MemorySource
    source_metadata: Optional[Any] = None
    expires_at: Optional[UtcDatetime] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "session_id": "session-42",
                    "memory_type": "user_preference",
                    "content": "Prefers email notifications over SMS",
                    "importance": "high",
                    "confidence": 0.8,
                    "source": "conversation",
                }
            ]
        }
    }


class ShortTermMemory(BaseModel):
    """A session-scoped memory record.

    Exactly one record exists per (user_id, session_id, memory_type, content);
    repeated writes bump ``access_count`` instead of inserting.
    """

    id: Optional[str] = None
    user_id: str
    enterprise_id: str
    session_id: str
    memory_type: MemoryType
    content: str
    structured_data: Optional[Any] = None
    context: ShortTermContext = Field(default_factory=ShortTermContext)
    importance: Importance
    confidence: UnitFloat
    source: MemorySource
    source_metadata: Optional[Any] = None
    access_count: int = 1
    last_accessed_at: UtcDatetime = Field(default_factory=utc_now)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    expires_at: Optional[UtcDatetime] = None
    is_processed: bool = False
    should_consolidate: bool = False
    consolidated_at: Optional[UtcDatetime] = None

    @property
    def is_pending_consolidation(self) -> bool:
        """Flagged for promotion and not yet promoted."""
        return self.should_consolidate and self.consolidated_at is None


class LongTermMemoryCreate(BaseModel):
    """Input for a long-term write.

    ``consolidated_from`` lists the short-term ids being promoted, if any.
    """

    memory_type: MemoryType
    content: str
    structured_data: Optional[Any] = None
    summary: Optional[str] = None
    keywords: Optional[list[str]] = None
    context: LongTermContext = Field(default_factory=LongTermContext)
    importance: Importance
    confidence: UnitFloat
    source: MemorySource
    source_chain: Optional[list[str]] = None
    consolidated_from: Optional[list[str]] = None


class LongTermMemory(BaseModel):
    """A durable memory with strength, decay and reinforcement.

    ``strength`` and ``confidence`` are always within [0, 1]. A record whose
    strength reaches 0 is dead and is never returned by reads.
    """

    id: Optional[str] = None
    user_id: str
    enterprise_id: str
    memory_type: MemoryType
    content: str
    structured_data: Optional[Any] = None
    summary: str = ""
    embedding: Optional[list[float]] = None
    keywords: list[str] = Field(default_factory=list)
    context: LongTermContext = Field(default_factory=LongTermContext)
    importance: Importance
    confidence: UnitFloat
    source: MemorySource
    source_chain: list[str] = Field(default_factory=list)
    consolidated_from: list[str] = Field(default_factory=list)
    strength: UnitFloat
    reinforcement_count: int = 0
    decay_rate: float = Field(ge=0.0)
    last_reinforced_at: Optional[UtcDatetime] = None
    access_count: int = 1
    last_accessed_at: UtcDatetime = Field(default_factory=utc_now)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)
    is_verified: bool = False
    # Reserved for contradiction tracking; no write path sets it.
    contradicted_by: Optional[str] = None


class MemoryAssociation(BaseModel):
    """Directed edge between two long-term memories.

    Populated by an external collaborator; read-only here.
    """

    id: Optional[str] = None
    from_memory_id: str
    to_memory_id: str
    association_type: str = "related"
    strength: UnitFloat = 1.0
    created_at: UtcDatetime = Field(default_factory=utc_now)


class ConsolidationJob(BaseModel):
    """Record of one short-term to long-term promotion run."""

    id: Optional[str] = None
    user_id: str
    enterprise_id: str
    status: ConsolidationStatus = ConsolidationStatus.PENDING
    short_term_memory_ids: list[str] = Field(default_factory=list)
    created_long_term_memory_ids: list[str] = Field(default_factory=list)
    memories_processed: int = 0
    memories_consolidated: int = 0
    patterns_found: int = 0
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    error: Optional[str] = None
