"""Token transfer interface and an in-memory implementation.

The coordinator settles owed legs through a TokenBank and keeps the
receipts so a failed operation can hand every completed leg back.
"""

from abc import ABC, abstractmethod

from dynfee.exceptions import TransferFailedError
from dynfee.logging import get_logger
from dynfee.models import TransferReceipt

logger = get_logger(__name__)


class TokenBank(ABC):
    """Abstract token custody used for settlement."""

    @abstractmethod
    async def balance_of(self, token: str, holder: str) -> int:
        ...

    @abstractmethod
    async def transfer(
        self, token: str, sender: str, recipient: str, amount: int
    ) -> TransferReceipt:
        """Move amount of token from sender to recipient.

        Raises:
            TransferFailedError: If the transfer cannot complete.
        """
        ...

    @abstractmethod
    async def reverse(self, receipt: TransferReceipt) -> None:
        """Undo a transfer previously made by this bank."""
        ...


class InMemoryTokenBank(TokenBank):
    """Dict-backed balances for paper trading and tests.

    Balances never go negative; a transfer larger than the sender's balance
    fails without moving anything.
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}

    def mint_to(self, token: str, holder: str, amount: int) -> None:
        """Credit holder with freshly created tokens."""
        self._credit(token, holder, amount)

    def get_balances(self) -> dict[tuple[str, str], int]:
        """Non-zero balances keyed by (token, holder)."""
        return dict(self._balances)

    def _credit(self, token: str, holder: str, amount: int) -> None:
        # zero balances are dropped so snapshots compare equal after a reversal
        key = (token, holder)
        balance = self._balances.get(key, 0) + amount
        if balance:
            self._balances[key] = balance
        else:
            self._balances.pop(key, None)

    async def balance_of(self, token: str, holder: str) -> int:
        return self._balances.get((token, holder), 0)

    async def transfer(
        self, token: str, sender: str, recipient: str, amount: int
    ) -> TransferReceipt:
        if amount < 0:
            raise TransferFailedError(f"negative transfer amount {amount}")

        available = self._balances.get((token, sender), 0)
        if available < amount:
            raise TransferFailedError(
                f"{sender} holds {available} {token}, cannot transfer {amount}"
            )

        self._credit(token, sender, -amount)
        self._credit(token, recipient, amount)

        logger.debug(
            "token_transferred",
            token=token,
            sender=sender,
            recipient=recipient,
            amount=amount,
        )
        return TransferReceipt(
            token=token, sender=sender, recipient=recipient, amount=amount
        )

    async def reverse(self, receipt: TransferReceipt) -> None:
        await self.transfer(
            receipt.token, receipt.recipient, receipt.sender, receipt.amount
        )
        logger.info(
            "token_transfer_reversed",
            token=receipt.token,
            amount=receipt.amount,
        )
