"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


class FailureReason(str, Enum):
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_QUANTITY = "INSUFFICIENT_QUANTITY"


class UserStatus(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
