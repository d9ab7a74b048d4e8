"""Tests for TradeHistoryLedger.

Verifies:
- Windowed sum boundary is inclusive at exactly the window width
- Zero-amount records never change the sum
- Reads do not mutate; prune evicts only expired records
- Absolute positions survive eviction
- Ordering and sign rules on append
"""

import pytest

from dynfee.exceptions import ArithmeticOverflowError, LedgerError
from dynfee.history.ledger import TradeHistoryLedger
from dynfee.uint import UINT256_MAX

NOW = 1_700_000_000
DAY = 86400


@pytest.fixture
def ledger() -> TradeHistoryLedger:
    return TradeHistoryLedger(DAY)


class TestWindowedSum:
    def test_empty_ledger_sums_to_zero(self, ledger: TradeHistoryLedger) -> None:
        assert ledger.windowed_sum(NOW) == 0

    def test_boundary_is_inclusive(self, ledger: TradeHistoryLedger) -> None:
        """A record exactly one window old is included; one second older is not."""
        ledger.append(7, NOW - DAY - 1)
        ledger.append(11, NOW - DAY)
        ledger.append(13, NOW)

        assert ledger.windowed_sum(NOW) == 24

    def test_excludes_everything_once_window_passes(
        self, ledger: TradeHistoryLedger
    ) -> None:
        ledger.append(100, NOW)
        ledger.append(200, NOW + 10)

        assert ledger.windowed_sum(NOW + DAY) == 300
        assert ledger.windowed_sum(NOW + DAY + 1) == 200
        assert ledger.windowed_sum(NOW + DAY + 11) == 0

    def test_zero_amount_does_not_change_sum(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(500, NOW - 100)
        before = ledger.windowed_sum(NOW)

        ledger.append(0, NOW - 50)

        assert ledger.windowed_sum(NOW) == before

    def test_sum_does_not_evict(self, ledger: TradeHistoryLedger) -> None:
        """Queries are read-only, even for records long out of the window."""
        ledger.append(5, NOW - 10 * DAY)
        ledger.windowed_sum(NOW)

        assert ledger.retained == 1
        assert ledger.windowed_sum(NOW - 10 * DAY) == 5

    def test_overflow_raises(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(UINT256_MAX, NOW)
        ledger.append(1, NOW)

        with pytest.raises(ArithmeticOverflowError):
            ledger.windowed_sum(NOW)


class TestPrune:
    def test_prune_evicts_only_expired(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(1, NOW - DAY - 1)
        ledger.append(2, NOW - DAY)
        ledger.append(3, NOW)

        evicted = ledger.prune(NOW)

        assert evicted == 1
        assert ledger.retained == 2
        assert ledger.windowed_sum(NOW) == 5

    def test_positions_are_absolute_after_eviction(
        self, ledger: TradeHistoryLedger
    ) -> None:
        ledger.append(1, NOW - 2 * DAY)
        ledger.append(2, NOW)
        ledger.prune(NOW)

        assert len(ledger) == 2
        assert ledger[1].amount == 2
        with pytest.raises(IndexError, match="evicted"):
            ledger[0]

    def test_prune_on_empty_is_noop(self, ledger: TradeHistoryLedger) -> None:
        assert ledger.prune(NOW) == 0


class TestAppend:
    def test_records_are_indexed_in_order(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(10, NOW)
        ledger.append(20, NOW + 1)

        assert ledger[0].amount == 10
        assert ledger[0].timestamp == NOW
        assert ledger[-1].amount == 20

    def test_out_of_range_position(self, ledger: TradeHistoryLedger) -> None:
        with pytest.raises(IndexError):
            ledger[0]

    def test_negative_amount_rejected(self, ledger: TradeHistoryLedger) -> None:
        with pytest.raises(LedgerError):
            ledger.append(-1, NOW)

    def test_earlier_timestamp_rejected(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(1, NOW)
        with pytest.raises(LedgerError):
            ledger.append(1, NOW - 1)

    def test_same_timestamp_allowed(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(1, NOW)
        ledger.append(2, NOW)
        assert ledger.windowed_sum(NOW) == 3


class TestDiscardLast:
    def test_discard_newest(self, ledger: TradeHistoryLedger) -> None:
        ledger.append(1, NOW)
        record = ledger.append(2, NOW)

        ledger.discard_last(record)

        assert len(ledger) == 1
        assert ledger.windowed_sum(NOW) == 1

    def test_discard_requires_newest_record(self, ledger: TradeHistoryLedger) -> None:
        first = ledger.append(1, NOW)
        ledger.append(2, NOW)

        with pytest.raises(LedgerError):
            ledger.discard_last(first)
