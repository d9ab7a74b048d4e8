"""Two-phase settlement of swaps and liquidity additions at a dynamic fee.

Each entry point runs one initiate/settle sequence:

1. Quote a fee from the ledger and a fresh pool snapshot.
2. Open a PendingOperation (the in-flight token) and call the pool.
3. The pool calls back into settle_swap / settle_mint before returning.
   The callback is honoured only if it matches the pending operation's
   pool, kind and id; it records the trade (swaps only) and pays every
   positive leg to the pool.
4. The pool returns; the operation must be SETTLED by now.

A single asyncio.Lock is held for the whole sequence, so operations never
interleave and read-only queries only ever observe settled state. The
callbacks run nested inside the lock holder and never take it. Any other
call made from the task holding the lock (a pool re-entering the engine
mid-operation) is rejected with ReentrantCallError rather than waiting on
a lock its own caller holds.

If anything fails after step 2, the trade record is discarded and every
completed transfer is reversed before the error propagates. The pool is
expected to leave its own state untouched when its callback raises.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from uuid import uuid4

import structlog

from dynfee.clock import Clock, unix_now
from dynfee.exceptions import (
    ReentrantCallError,
    SettlementIncompleteError,
    UnauthorizedCallbackError,
)
from dynfee.fees.model import DynamicFeeModel
from dynfee.history.ledger import TradeHistoryLedger
from dynfee.logging import get_logger
from dynfee.models import (
    FeeQuote,
    OperationKind,
    OperationResult,
    OperationStatus,
    PendingOperation,
    SettlementData,
    TradeRecord,
)
from dynfee.pool.base import LiquidityPool, SettlementCallbacks
from dynfee.tokens.bank import TokenBank

logger = get_logger(__name__)


class SettlementCoordinator(SettlementCallbacks):
    """Fronts a pool with dynamic fees and settles its payment callbacks.

    Owns the trade history ledger exclusively: settle_swap is its only
    write path.

    Args:
        address: Identity the coordinator pays settlements from.
        fee_model: Derives the fee for each operation.
        ledger: Trade history shared with fee_model.
        bank: Token custody used to pay owed legs.
        clock: Source of record timestamps.
    """

    def __init__(
        self,
        address: str,
        fee_model: DynamicFeeModel,
        ledger: TradeHistoryLedger,
        bank: TokenBank,
        clock: Clock = unix_now,
    ) -> None:
        self._address = address
        self._fee_model = fee_model
        self._ledger = ledger
        self._bank = bank
        self._clock = clock
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None
        self._pending: PendingOperation | None = None

    @property
    def address(self) -> str:
        return self._address

    @property
    def pending(self) -> PendingOperation | None:
        """The in-flight operation, if a sequence is currently running."""
        return self._pending

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    async def calculate_fee(self, pool: LiquidityPool) -> int:
        async with self._exclusive("calculate_fee"):
            return await self._fee_model.compute_fee(pool)

    async def quote_fee(self, pool: LiquidityPool) -> FeeQuote:
        async with self._exclusive("quote_fee"):
            return await self._fee_model.quote(pool)

    async def calculate_24h_volume(self) -> int:
        async with self._exclusive("calculate_24h_volume"):
            return self._fee_model.volume()

    async def calculate_volatility(self, pool: LiquidityPool) -> int:
        async with self._exclusive("calculate_volatility"):
            return await self._fee_model.volatility(pool)

    async def trade_history(self, position: int) -> TradeRecord:
        """Return the trade record at an absolute ledger position.

        Raises:
            IndexError: If no record exists there or it has been evicted.
        """
        async with self._exclusive("trade_history"):
            return self._ledger[position]

    async def trade_count(self) -> int:
        async with self._exclusive("trade_count"):
            return len(self._ledger)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def swap_with_dynamic_fee(
        self,
        pool: LiquidityPool,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit: Decimal | None = None,
        aux_data: bytes = b"",
    ) -> OperationResult:
        """Swap through the pool at the current dynamic fee.

        Returns:
            OperationResult with the pool's deltas and the recorded trade.

        Raises:
            DynFeeError: Any failure; the ledger and transfers are rolled back.
        """
        async with self._exclusive("swap_with_dynamic_fee"):
            fee = await self._fee_model.compute_fee(pool)
            op = await self._begin(OperationKind.SWAP, pool, fee)
            data = SettlementData(
                operation_id=op.operation_id, fee=fee, aux_data=aux_data
            )

            with structlog.contextvars.bound_contextvars(operation_id=op.operation_id):
                try:
                    amount0, amount1 = await pool.swap(
                        self,
                        recipient,
                        zero_for_one,
                        amount_specified,
                        sqrt_price_limit,
                        data,
                    )
                    self._require_settled(op)
                except BaseException as exc:
                    await self._rollback(op, exc)
                    raise
                finally:
                    self._pending = None

                self._ledger.prune(self._clock())
                logger.info(
                    "swap_completed",
                    pool=pool.address,
                    recipient=recipient,
                    zero_for_one=zero_for_one,
                    fee=fee,
                    amount0=amount0,
                    amount1=amount1,
                )

            return OperationResult(
                operation_id=op.operation_id,
                kind=OperationKind.SWAP,
                fee=fee,
                amount0=amount0,
                amount1=amount1,
                trade=op.record,
            )

    async def add_liquidity_with_dynamic_fee(
        self,
        pool: LiquidityPool,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        aux_data: bytes = b"",
    ) -> OperationResult:
        """Add liquidity through the pool at the current dynamic fee.

        Never records trade volume.
        """
        async with self._exclusive("add_liquidity_with_dynamic_fee"):
            fee = await self._fee_model.compute_fee(pool)
            op = await self._begin(OperationKind.MINT, pool, fee)
            data = SettlementData(
                operation_id=op.operation_id, fee=fee, aux_data=aux_data
            )

            with structlog.contextvars.bound_contextvars(operation_id=op.operation_id):
                try:
                    amount0, amount1 = await pool.mint(
                        self, recipient, tick_lower, tick_upper, amount, data
                    )
                    self._require_settled(op)
                except BaseException as exc:
                    await self._rollback(op, exc)
                    raise
                finally:
                    self._pending = None

                logger.info(
                    "mint_completed",
                    pool=pool.address,
                    recipient=recipient,
                    tick_lower=tick_lower,
                    tick_upper=tick_upper,
                    liquidity=amount,
                    fee=fee,
                    amount0=amount0,
                    amount1=amount1,
                )

            return OperationResult(
                operation_id=op.operation_id,
                kind=OperationKind.MINT,
                fee=fee,
                amount0=amount0,
                amount1=amount1,
            )

    # ------------------------------------------------------------------
    # Pool callbacks
    # ------------------------------------------------------------------

    async def settle_swap(
        self,
        sender: str,
        amount0_delta: int,
        amount1_delta: int,
        data: SettlementData,
    ) -> None:
        op = self._authorize(sender, OperationKind.SWAP, data)

        # record whichever leg the pool is owed
        owed = amount0_delta if amount0_delta > 0 else amount1_delta
        op.record = self._ledger.append(abs(owed), self._clock())

        await self._pay(op, amount0_delta, amount1_delta)
        op.status = OperationStatus.SETTLED
        logger.info(
            "swap_settled",
            amount0_delta=amount0_delta,
            amount1_delta=amount1_delta,
            recorded=op.record.amount,
        )

    async def settle_mint(
        self,
        sender: str,
        amount0_owed: int,
        amount1_owed: int,
        data: SettlementData,
    ) -> None:
        op = self._authorize(sender, OperationKind.MINT, data)
        await self._pay(op, amount0_owed, amount1_owed)
        op.status = OperationStatus.SETTLED
        logger.info(
            "mint_settled", amount0_owed=amount0_owed, amount1_owed=amount1_owed
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, call: str) -> AsyncIterator[None]:
        """Hold the coordinator lock, refusing calls from the task that holds it."""
        if self._owner is not None and self._owner is asyncio.current_task():
            logger.warning(
                "reentrant_call_rejected",
                call=call,
                pending=self._pending.operation_id if self._pending else None,
            )
            raise ReentrantCallError(f"{call} called while this task holds the engine")

        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield
            finally:
                self._owner = None

    async def _begin(
        self, kind: OperationKind, pool: LiquidityPool, fee: int
    ) -> PendingOperation:
        token0 = await pool.token0()
        token1 = await pool.token1()
        op = PendingOperation(
            operation_id=f"op_{uuid4().hex[:12]}",
            kind=kind,
            pool_address=pool.address,
            token0=token0,
            token1=token1,
            fee=fee,
        )
        self._pending = op
        return op

    def _authorize(
        self, sender: str, kind: OperationKind, data: SettlementData
    ) -> PendingOperation:
        op = self._pending
        if op is None:
            reason = "no operation in flight"
        elif sender != op.pool_address:
            reason = f"sender {sender} is not the invoked pool {op.pool_address}"
        elif kind != op.kind:
            reason = f"{kind.value} callback during a {op.kind.value} operation"
        elif data.operation_id != op.operation_id:
            reason = f"operation id {data.operation_id} does not match"
        elif op.settling or op.status != OperationStatus.PENDING:
            reason = "operation already settled"
        else:
            op.settling = True
            return op

        logger.warning(
            "unauthorized_callback", sender=sender, kind=kind.value, reason=reason
        )
        raise UnauthorizedCallbackError(reason)

    async def _pay(self, op: PendingOperation, amount0: int, amount1: int) -> None:
        for token, amount in ((op.token0, amount0), (op.token1, amount1)):
            if amount > 0:
                receipt = await self._bank.transfer(
                    token, self._address, op.pool_address, amount
                )
                op.receipts.append(receipt)

    def _require_settled(self, op: PendingOperation) -> None:
        if op.status != OperationStatus.SETTLED:
            raise SettlementIncompleteError(
                f"pool {op.pool_address} returned without settling {op.kind.value}"
            )

    async def _rollback(self, op: PendingOperation, cause: BaseException) -> None:
        """Discard the trade record and reverse every receipt, newest first.

        Every receipt is attempted even if an earlier reversal fails; the
        first reversal failure is then raised from cause.
        """
        if op.record is not None:
            self._ledger.discard_last(op.record)

        failures: list[Exception] = []
        for receipt in reversed(op.receipts):
            try:
                await self._bank.reverse(receipt)
            except Exception as exc:
                failures.append(exc)
                logger.error(
                    "transfer_reversal_failed",
                    token=receipt.token,
                    recipient=receipt.recipient,
                    amount=receipt.amount,
                    error=str(exc),
                )

        op.status = OperationStatus.ROLLED_BACK
        logger.warning(
            "operation_rolled_back",
            kind=op.kind.value,
            pool=op.pool_address,
            cause=type(cause).__name__,
            discarded_trade=op.record is not None,
            reversed_transfers=len(op.receipts) - len(failures),
            failed_reversals=len(failures),
        )
        if failures:
            raise failures[0] from cause
