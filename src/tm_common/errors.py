"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Wallet
  3xxx: Announcement
  4xxx: Trade / Transaction
  5xxx: User
  9xxx: System

Taxonomy bases (ValidationError, NotFoundError, BusinessRuleError, AuthError)
let callers catch a whole family without enumerating concrete errors.
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class ValidationError(AppError):
    """Malformed request. Raised before any I/O."""


class NotFoundError(AppError):
    """A referenced entity does not exist."""


class BusinessRuleError(AppError):
    """Request is well-formed but violates a trading rule."""


class AuthError(AppError):
    """Credential could not be resolved to an identity."""


# --- 1xxx: Auth ---

class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired credential", 401)


# --- 2xxx: Wallet ---

class InsufficientFundsError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


class WalletNotFoundError(NotFoundError):
    def __init__(self, ref: str) -> None:
        super().__init__(2002, f"Wallet not found: {ref}", 404)


# --- 3xxx: Announcement ---

class AnnouncementNotFoundError(NotFoundError):
    def __init__(self, announcement_id: str) -> None:
        super().__init__(3001, f"Announcement not found: {announcement_id}", 404)


class InsufficientQuantityError(BusinessRuleError):
    def __init__(self, requested: int, available: int | None = None) -> None:
        detail = f"Insufficient quantity: requested {requested}"
        if available is not None:
            detail += f", available {available}"
        super().__init__(3002, detail, 422)


# --- 4xxx: Trade / Transaction ---

class TradeValidationError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, detail, 422)


class SelfTradeError(BusinessRuleError):
    def __init__(self) -> None:
        super().__init__(4002, "Cannot trade with yourself", 422)


class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(4004, f"Transaction not found: {transaction_id}", 404)


class InvalidStatusTransitionError(BusinessRuleError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            4005,
            f"Transaction in status {current} cannot move to {target}",
            409,
        )


class NotTransactionRecipientError(BusinessRuleError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(
            4006,
            f"Only the receiving party may resolve transaction {transaction_id}",
            403,
        )


# --- 5xxx: User ---

class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(5001, f"User not found: {user_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
