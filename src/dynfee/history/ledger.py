"""Time-windowed ledger of settled swap amounts.

Records are kept in a deque in chronological order. Queries walk the
tail newest-first and stop at the first record outside the window, so
their cost follows the in-window count rather than the full history.
Expired records are evicted by prune(), which the coordinator calls only
after an operation has committed; reads never mutate the ledger.

Positions are absolute: the first record ever appended is position 0,
whether or not it has since been evicted.
"""

from collections import deque

from dynfee.exceptions import LedgerError
from dynfee.logging import get_logger
from dynfee.models import TradeRecord
from dynfee.uint import checked_uint256

logger = get_logger(__name__)


class TradeHistoryLedger:
    """Append-only log of trade amounts with a sliding-window sum.

    Args:
        window_seconds: Width of the trailing window. A record at time t is
            inside the window at time now when now - t <= window_seconds.
    """

    def __init__(self, window_seconds: int = 86400) -> None:
        self._window = window_seconds
        self._records: deque[TradeRecord] = deque()
        self._evicted = 0

    @property
    def window_seconds(self) -> int:
        return self._window

    @property
    def retained(self) -> int:
        """Number of records still held (not yet evicted)."""
        return len(self._records)

    def __len__(self) -> int:
        return self._evicted + len(self._records)

    def __getitem__(self, position: int) -> TradeRecord:
        if position < 0:
            position += len(self)
        if position < 0 or position >= len(self):
            raise IndexError(f"no trade record at position {position}")
        if position < self._evicted:
            raise IndexError(f"trade record {position} has been evicted")
        return self._records[position - self._evicted]

    def append(self, amount: int, timestamp: int) -> TradeRecord:
        """Record a trade amount at the given time.

        Raises:
            LedgerError: If amount is negative or timestamp precedes the
                newest record.
        """
        if amount < 0:
            raise LedgerError(f"trade amount must be non-negative, got {amount}")
        if self._records and timestamp < self._records[-1].timestamp:
            raise LedgerError(
                f"timestamp {timestamp} precedes newest record "
                f"{self._records[-1].timestamp}"
            )

        record = TradeRecord(timestamp=timestamp, amount=amount)
        self._records.append(record)
        logger.debug(
            "trade_recorded",
            position=len(self) - 1,
            amount=amount,
            timestamp=timestamp,
        )
        return record

    def discard_last(self, record: TradeRecord) -> None:
        """Remove the newest record, which must be the given one.

        Rollback hook for an operation that appended and then failed.
        """
        if not self._records or self._records[-1] is not record:
            raise LedgerError("only the newest trade record can be discarded")
        self._records.pop()

    def windowed_sum(self, now: int) -> int:
        """Sum the amounts of all records with now - timestamp <= window."""
        total = 0
        for record in reversed(self._records):
            if now - record.timestamp > self._window:
                break
            total += record.amount
        return checked_uint256(total, "windowed volume")

    def prune(self, now: int) -> int:
        """Evict records already outside the window at time now.

        Only valid when every later query uses a time >= now. Returns the
        number of records evicted.
        """
        evicted = 0
        while self._records and now - self._records[0].timestamp > self._window:
            self._records.popleft()
            evicted += 1
        if evicted:
            self._evicted += evicted
            logger.debug("ledger_pruned", evicted=evicted, retained=len(self._records))
        return evicted
