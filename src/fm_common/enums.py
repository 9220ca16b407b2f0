"""Global enums shared by every bounded context."""

from enum import Enum, IntEnum


class ProposalStage(IntEnum):
    """Lifecycle stage, strictly forward-only."""
    REVIEW = 0
    TRADING = 1
    SETTLEMENT = 2
    FINALIZED = 3


class AssetType(str, Enum):
    """Which collateral a conditional token is a claim on."""
    ASSET = "ASSET"
    STABLE = "STABLE"


class SwapDirection(str, Enum):
    ASSET_TO_STABLE = "ASSET_TO_STABLE"
    STABLE_TO_ASSET = "STABLE_TO_ASSET"


class EventType(str, Enum):
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    # AMM
    SWAP = "SWAP"
    LIQUIDITY_ADDED = "LIQUIDITY_ADDED"
    LIQUIDITY_REMOVED = "LIQUIDITY_REMOVED"
    # Oracle
    ORACLE_UPDATE = "ORACLE_UPDATE"
    # Lifecycle
    TRADING_STARTED = "TRADING_STARTED"
    TRADING_ENDED = "TRADING_ENDED"
    MARKET_FINALIZED = "MARKET_FINALIZED"
    # Conditional tokens
    TOKEN_MINTED = "TOKEN_MINTED"
    TOKEN_BURNED = "TOKEN_BURNED"
    TOKEN_SPLIT = "TOKEN_SPLIT"
    TOKEN_MERGED = "TOKEN_MERGED"
    TOKEN_TRANSFERRED = "TOKEN_TRANSFERRED"
    # Collateral
    COLLATERAL_DEPOSITED = "COLLATERAL_DEPOSITED"
    COLLATERAL_WITHDRAWN = "COLLATERAL_WITHDRAWN"
