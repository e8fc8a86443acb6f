from typing import Optional


class DcaError(Exception):
    """
    Base class for failures raised by the DCA pipeline itself.
    The message is meant to be shown to the user as-is.
    """


class DataUnavailableError(DcaError):
    """
    Market data could not be obtained (no price, empty history, feed down).
    """


class DelegationPermissionError(DcaError):
    """
    No usable permission: missing, expired, revoked, or no session account.
    """
    def __init__(self, msg: str, user_id: Optional[str] = None, kind: Optional[str] = None):
        super().__init__(msg)
        self.user_id = user_id
        self.kind = kind


class InsufficientBalanceError(DcaError):
    """
    Raised BEFORE any funding call when the principal cannot cover the shortfall,
    or after funding when the delegate balance still does not cover the swap.
    """
    def __init__(self, msg: str, token: str, required: int, available: int):
        super().__init__(msg)
        self.token = token
        self.required = required
        self.available = available


class ChainRevertError(DcaError):
    """
    The tx was mined with status == 0. Gas was already paid.
    reason holds the decoded revert string when a replay could recover it.
    """
    def __init__(self, tx_hash: str, receipt: dict, msg: str, reason: Optional[str] = None):
        super().__init__(msg)
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.msg = msg
        self.reason = reason


class ConfirmationTimeoutError(DcaError):
    """
    A bounded external step (RPC call, receipt wait, feed fetch) ran out of time.
    A tx may still land after this is raised; nothing here retries it.
    """
    def __init__(self, step: str, timeout_sec: float, tx_hash: Optional[str] = None):
        super().__init__(f"{step} timed out after {timeout_sec:g}s")
        self.step = step
        self.timeout_sec = timeout_sec
        self.tx_hash = tx_hash
