"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Invalid input (amounts, indices, token identity)
  2xxx: Economic guards (slippage, price impact, liquidity)
  3xxx: Sequencing / lifecycle state
  4xxx: Arithmetic
  5xxx: Authorization (capabilities)
  6xxx: Lookup
  9xxx: System
"""


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


class InvalidInputError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class EconomicGuardError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class SequencingError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409)


class NumericError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class AuthorizationError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 403)


# --- 1xxx: Invalid input ---

class ZeroAmountError(InvalidInputError):
    def __init__(self, what: str = "amount") -> None:
        super().__init__(1001, f"{what} must be greater than zero")


class InvalidOutcomeIndexError(InvalidInputError):
    def __init__(self, index: int, outcome_count: int) -> None:
        super().__init__(
            1002, f"Outcome index {index} out of range (outcome_count={outcome_count})"
        )


class OutcomeCountMismatchError(InvalidInputError):
    def __init__(self, expected: int, got: int) -> None:
        super().__init__(1003, f"Expected {expected} outcomes, got {got}")


class InvalidOutcomeCountError(InvalidInputError):
    def __init__(self, count: int, minimum: int, maximum: int) -> None:
        super().__init__(
            1004, f"Outcome count {count} outside allowed range [{minimum}, {maximum}]"
        )


class WrongMarketError(InvalidInputError):
    def __init__(self, expected: str, got: str) -> None:
        super().__init__(1005, f"Wrong market: expected {expected}, got {got}")


class WrongTokenTypeError(InvalidInputError):
    def __init__(self, expected: str, got: str) -> None:
        super().__init__(1006, f"Wrong token type: expected {expected}, got {got}")


class WrongOutcomeError(InvalidInputError):
    def __init__(self, expected: int, got: int) -> None:
        super().__init__(1007, f"Wrong outcome: expected {expected}, got {got}")


class InsufficientTokenBalanceError(InvalidInputError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            1008, f"Insufficient token balance: required {required}, available {available}"
        )


class TokenConsumedError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(1009, "Token has already been burned or merged")


class MismatchedAmountsError(InvalidInputError):
    def __init__(self, amounts: list[int]) -> None:
        super().__init__(1010, f"Complete set amounts must be equal, got {amounts}")


class InvalidPercentageError(InvalidInputError):
    def __init__(self, pct_bps: int) -> None:
        super().__init__(1011, f"Percentage must be within 1..10000 bps, got {pct_bps}")


class InvalidPriceError(InvalidInputError):
    def __init__(self, price: int) -> None:
        super().__init__(1012, f"Price must be positive, got {price}")


class InvalidConfigError(InvalidInputError):
    def __init__(self, detail: str) -> None:
        super().__init__(1013, f"Invalid engine config: {detail}")


class AmountOutOfRangeError(InvalidInputError):
    def __init__(self, amount: int) -> None:
        super().__init__(1014, f"Amount {amount} does not fit an unsigned 64-bit integer")


# --- 2xxx: Economic guards ---

class SlippageExceededError(EconomicGuardError):
    def __init__(self, expected_min: int, actual: int) -> None:
        super().__init__(
            2001, f"Slippage exceeded: minimum out {expected_min}, actual {actual}"
        )


class PriceImpactTooHighError(EconomicGuardError):
    def __init__(self, impact_bps: int, max_bps: int) -> None:
        super().__init__(
            2002, f"Price impact too high: {impact_bps} bps (max {max_bps} bps)"
        )


class PoolDrainedError(EconomicGuardError):
    def __init__(self, amount_out: int, reserve_out: int) -> None:
        super().__init__(
            2003, f"Swap would drain the pool: out {amount_out} >= reserve {reserve_out}"
        )


class InsufficientLiquidityError(EconomicGuardError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, f"Insufficient liquidity: {detail}")


# --- 3xxx: Sequencing ---

class TradingNotStartedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3001, "Trading has not started")


class AlreadyStartedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3002, "Trading has already started")


class TradingAlreadyEndedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3003, "Trading has already ended")


class TradingNotEndedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3004, "Trading has not ended")


class AlreadyFinalizedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3005, "Market is already finalized")


class NotFinalizedError(SequencingError):
    def __init__(self) -> None:
        super().__init__(3006, "Market is not finalized")


class OutOfSequenceError(SequencingError):
    def __init__(self, expected: int, got: int) -> None:
        super().__init__(
            3007, f"Supplies must be registered in order: expected outcome {expected}, got {got}"
        )


class SuppliesNotRegisteredError(SequencingError):
    def __init__(self, registered: int, outcome_count: int) -> None:
        super().__init__(
            3008, f"Only {registered} of {outcome_count} outcome supplies are registered"
        )


class TimestampRegressionError(SequencingError):
    def __init__(self, last: int, got: int) -> None:
        super().__init__(3009, f"Timestamp regression: last {last}, got {got}")


class TwapNotReadyError(SequencingError):
    def __init__(self, detail: str) -> None:
        super().__init__(3010, f"TWAP not ready: {detail}")


class TooEarlyError(SequencingError):
    def __init__(self, eligible_at: int, now: int) -> None:
        super().__init__(
            3011, f"Transition not yet eligible: eligible at {eligible_at}, now {now}"
        )


# --- 4xxx: Arithmetic ---

class ArithmeticOverflowError(NumericError):
    def __init__(self, detail: str = "value exceeds native range") -> None:
        super().__init__(4001, f"Arithmetic overflow: {detail}")


class DivisionByZeroError(NumericError):
    def __init__(self) -> None:
        super().__init__(4002, "Division by zero")


# --- 5xxx: Authorization ---

class UnauthorizedError(AuthorizationError):
    def __init__(self, detail: str = "capability is not bound to this instance") -> None:
        super().__init__(5001, f"Unauthorized: {detail}")


# --- 6xxx: Lookup ---

class ProposalNotFoundError(AppError):
    def __init__(self, proposal_id: str) -> None:
        super().__init__(6001, f"Proposal not found: {proposal_id}", 404)


class ProposalAlreadyExistsError(AppError):
    def __init__(self, proposal_id: str) -> None:
        super().__init__(6002, f"Proposal already exists: {proposal_id}", 409)


# --- 9xxx: System ---

class InvariantViolationError(AppError):
    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(9001, "Invariant violated: " + "; ".join(violations), 500)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
