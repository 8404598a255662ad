"""Error taxonomy.

Only ConfigError is fatal (startup). DataSourceError and PublishError are
contained at the cycle boundary and turned into an "error" record.
"""

from __future__ import annotations


class RiskSignalError(RuntimeError):
    pass


class ConfigError(RiskSignalError):
    """Missing or invalid configuration."""


class DataSourceError(RiskSignalError):
    """Upstream market data unreachable, malformed or out of domain."""


class PublishError(RiskSignalError):
    """setTier submission failed or the receipt is missing / unsuccessful."""
