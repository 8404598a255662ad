"""Polymarket probability -> on-chain RiskSignal tier publisher."""

__version__ = "0.1.0"
