"""Pump.fun bonding-curve and PumpSwap AMM program constants."""

from solders.pubkey import Pubkey  # type: ignore[import-untyped]

# Programs
PUMP_PROGRAM_ID = Pubkey.from_string("6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P")
PUMP_AMM_PROGRAM_ID = Pubkey.from_string("pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA")
PUMP_FEE_PROGRAM_ID = Pubkey.from_string("pfeeUxB6jkeY1Hxd7CsFCAjcbHA9rWtchMGdZ6VojVZ")
METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

# Curve program event authority (fixed, not re-derived per call)
PUMP_EVENT_AUTHORITY = Pubkey.from_string("Ce6TQqeHC9p8KetsN6JsjHK7UTZk7nasjjnr7XxXp9F1")

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string(
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
)

WSOL_MINT = Pubkey.from_string("So11111111111111111111111111111111111111112")

# PDA seeds
SEED_GLOBAL = b"global"
SEED_BONDING_CURVE = b"bonding-curve"
SEED_CREATOR_VAULT = b"creator-vault"
SEED_GLOBAL_VOLUME_ACCUMULATOR = b"global_volume_accumulator"
SEED_USER_VOLUME_ACCUMULATOR = b"user_volume_accumulator"
SEED_FEE_CONFIG = b"fee_config"
SEED_POOL_AUTHORITY = b"pool-authority"
SEED_POOL = b"pool"
SEED_AMM_GLOBAL_CONFIG = b"global_config"
SEED_EVENT_AUTHORITY = b"__event_authority"
SEED_AMM_CREATOR_VAULT = b"creator_vault"
SEED_METADATA = b"metadata"

# Second seed of the fee-config PDAs (fee program), one per trading program
CURVE_FEE_CONFIG_SEED = bytes([
    1, 86, 224, 246, 147, 102, 90, 207, 68, 219, 21, 104, 191, 23, 91, 170,
    81, 137, 203, 151, 245, 210, 255, 59, 101, 93, 43, 182, 253, 109, 24, 176,
])
AMM_FEE_CONFIG_SEED = bytes([
    12, 20, 222, 252, 130, 94, 198, 118, 148, 37, 8, 24, 187, 101, 64, 101,
    244, 41, 141, 49, 86, 213, 113, 180, 212, 248, 9, 12, 24, 233, 168, 99,
])

# AMM pools for migrated tokens always use index 0
CANONICAL_POOL_INDEX = 0

# 8-byte Anchor discriminators (shared by curve and AMM programs)
BUY_DISCRIMINATOR = bytes([102, 6, 61, 18, 1, 218, 235, 234])
SELL_DISCRIMINATOR = bytes([51, 230, 133, 164, 1, 127, 131, 173])
TRADE_EVENT_DISCRIMINATOR = bytes([189, 219, 127, 211, 78, 230, 97, 238])

# AMM buy trailing args: track_volume = Some(true)
TRACK_VOLUME_FLAG = bytes([1, 1])

ACCOUNT_DISCRIMINATOR_SIZE = 8

# AMM swap fee
AMM_FEE_BPS = 100
BPS_DENOMINATOR = 10_000

LAMPORTS_PER_SOL = 1_000_000_000

# One whole token (6 decimals) used as the spot-price probe
PRICE_PROBE_TOKEN_AMOUNT = 1_000_000

PROGRAM_DATA_LOG_PREFIX = "Program data: "
