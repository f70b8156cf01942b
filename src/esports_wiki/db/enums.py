from __future__ import annotations

from enum import Enum


class EntityStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    RETIRED = "retired"
    DISBANDED = "disbanded"
    UNKNOWN = "unknown"


class TournamentStatusEnum(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    CONCLUDED = "concluded"
    UNKNOWN = "unknown"


class MatchStatusEnum(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class RecordSourceEnum(str, Enum):
    # structured bulk query vs. category enumeration vs. page markup
    STRUCTURED = "structured"
    FALLBACK = "fallback"
    MARKUP = "markup"


class SyncStatusEnum(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class FetchOutcomeEnum(str, Enum):
    COMPLETE = "complete"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    FAILED = "failed"
