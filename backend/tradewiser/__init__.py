"""TradeWiser - electronic warehouse receipt platform backend."""

__version__ = "1.4.0"
