"""HTTP API exposing fee queries and paper-mode swap/mint actions."""

from dynfee.api.app import create_app

__all__ = ["create_app"]
