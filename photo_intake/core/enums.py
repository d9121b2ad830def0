from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


class PhotoStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MirrorStatus(str, Enum):
    UPLOADED = "uploaded"
    ALREADY_MIRRORED = "already_mirrored"
    SKIPPED_OR_FAILED = "skipped_or_failed"
