# app/x402/settlement.py
"""
Asynchronous settlement handle.

Settlement (the on-chain transfer performed by the facilitator) completes
after payment verification. The payment gate hands route handlers a
SettlementHandle; a handler that needs the transaction details awaits it
with a bounded budget and gets an explicit outcome: settled, failed or
timed out.

The settle call starts lazily, on the first start() or wait(), and at most
once per handle. The wait budget is per handle: the first wait fixes a
deadline and later waits only get what is left of it. A timed out wait does
not cancel the settle call, which keeps running in the background until the
facilitator answers.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from x402.types import SettleResponse

from app.x402.networks import explorer_tx_url

logger = logging.getLogger(__name__)


class SettlementStatus(str, Enum):
    SETTLED = "settled"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of waiting on a settlement."""
    status: SettlementStatus
    network: Optional[str] = None
    transaction: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = None
    response: Optional[SettleResponse] = None

    @property
    def settled(self) -> bool:
        return self.status is SettlementStatus.SETTLED

    @property
    def failed(self) -> bool:
        return self.status is SettlementStatus.FAILED

    @property
    def explorer_url(self) -> Optional[str]:
        return explorer_tx_url(self.network, self.transaction)

    @classmethod
    def from_settle_response(cls, response: SettleResponse, network: str) -> "SettlementResult":
        if not response.success:
            return cls(
                status=SettlementStatus.FAILED,
                network=response.network or network,
                payer=response.payer,
                error_reason=response.error_reason or "Unknown reason",
                response=response,
            )
        return cls(
            status=SettlementStatus.SETTLED,
            network=response.network or network,
            transaction=response.transaction or None,
            payer=response.payer,
            response=response,
        )


class SettlementHandle:
    """
    Awaitable handle on a single facilitator settle call.

    Args:
        settle: Zero-argument coroutine function performing the settle call
        network: Network the payment was made on, used for explorer links
    """

    def __init__(self, settle: Callable[[], Awaitable[SettleResponse]], network: str):
        self._settle = settle
        self.network = network
        self._task: Optional["asyncio.Future[SettlementResult]"] = None
        self._deadline: Optional[float] = None
        self._observed: Optional[SettlementResult] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def observed(self) -> Optional[SettlementResult]:
        """The first outcome a wait() returned, None until someone waited."""
        return self._observed

    def start(self) -> "asyncio.Future[SettlementResult]":
        """Start the settle call if it has not been started yet."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return self._task

    async def _run(self) -> SettlementResult:
        try:
            response = await self._settle()
        except Exception as e:
            logger.error(f"x402: Payment settlement failed: {e}")
            return SettlementResult(
                status=SettlementStatus.FAILED,
                network=self.network,
                error_reason=str(e),
            )

        result = SettlementResult.from_settle_response(response, self.network)
        if result.settled:
            logger.info(f"x402: Payment settled on {result.network}: {result.transaction}")
        else:
            logger.warning(f"x402: Facilitator rejected settlement: {result.error_reason}")
        return result

    async def wait(self, timeout: float) -> SettlementResult:
        """
        Wait up to ``timeout`` seconds for the settlement outcome.

        The first call fixes the deadline; later calls wait at most until that
        same deadline.

        Returns:
            The settlement result, or a TIMED_OUT result if the facilitator
            has not answered within the budget
        """
        task = self.start()
        now = asyncio.get_running_loop().time()
        if self._deadline is None:
            self._deadline = now + timeout
        remaining = max(0.0, self._deadline - now)
        try:
            result = await asyncio.wait_for(asyncio.shield(task), remaining)
        except asyncio.TimeoutError:
            logger.warning(f"x402: Settlement still pending after {timeout}s on {self.network}")
            result = SettlementResult(status=SettlementStatus.TIMED_OUT, network=self.network)
        if self._observed is None:
            self._observed = result
        return result
