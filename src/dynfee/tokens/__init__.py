"""Token settlement layer."""

from dynfee.tokens.bank import InMemoryTokenBank, TokenBank

__all__ = ["InMemoryTokenBank", "TokenBank"]
