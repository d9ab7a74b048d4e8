"""Trade history: the time-windowed ledger of settled swap amounts."""

from dynfee.history.ledger import TradeHistoryLedger

__all__ = ["TradeHistoryLedger"]
