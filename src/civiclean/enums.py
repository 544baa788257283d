"""Closed enumerations shared by the ORM models, services and API schemas."""

from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    REPORTED = "reported"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    VALIDATING = "validating"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TicketType(str, Enum):
    GENERAL = "general"
    RECYCLABLE = "recyclable"
    ORGANIC = "organic"
    ELECTRONIC = "electronic"
    HAZARDOUS = "hazardous"
    BULKY = "bulky"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class CleaningStatus(str, Enum):
    PARTIAL = "partial"
    COMPLETE = "complete"


class ValidationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Zone(str, Enum):
    CENTER = "Center"
    NORTH = "North"
    SOUTH = "South"
    EAST = "East"
    WEST = "West"


class MissionType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIAL = "special"


class MissionCategory(str, Enum):
    REPORTER = "reporter"
    CLEANER = "cleaner"
    VALIDATOR = "validator"
    SOCIAL = "social"
    STREAK = "streak"
