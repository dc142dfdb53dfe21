class PumpTradeError(Exception):
    pass


class RpcError(PumpTradeError):
    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"{method} failed ({code}): {message}")


class AccountNotFound(PumpTradeError):
    def __init__(self, address: str, what: str = "account") -> None:
        self.address = address
        super().__init__(f"{what} not found: {address}")


class MalformedAccount(PumpTradeError):
    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"malformed account {address}: {reason}")


class TokenProgramDetectionFailed(PumpTradeError):
    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"failed to detect token program for {mint}")


class CurveAlreadyComplete(PumpTradeError):
    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__(f"bonding curve already complete for {mint}")


class AddressDerivationExhausted(PumpTradeError):
    def __init__(self, program_id: str) -> None:
        self.program_id = program_id
        super().__init__(f"no viable bump seed for program {program_id}")


class SubmissionFailed(PumpTradeError):
    """sendTransaction rejected the transaction. Recorded per sub-order, not raised to callers."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"submission failed: {reason}")


class TransactionRejected(PumpTradeError):
    def __init__(self, signature: str, error: object) -> None:
        self.signature = signature
        self.error = error
        super().__init__(f"transaction {signature} failed on-chain: {error}")


class TransactionExpired(PumpTradeError):
    def __init__(self, signature: str, last_valid_block_height: int, block_height: int) -> None:
        self.signature = signature
        self.last_valid_block_height = last_valid_block_height
        self.block_height = block_height
        super().__init__(
            f"transaction {signature} expired: block height {block_height} "
            f"> last valid {last_valid_block_height}"
        )


class ConfirmationTimedOut(PumpTradeError):
    def __init__(self, signature: str, attempts: int) -> None:
        self.signature = signature
        self.attempts = attempts
        super().__init__(
            f"confirmation timed out after {attempts} attempts, "
            f"check signature manually: {signature}"
        )
