"""Resident risk-signal daemon.

Runs the first cycle immediately, then one cycle per interval. Cycles are
strictly sequential: the next one is only scheduled after the previous one
returned (success, skip or error), so two setTier transactions never race
for the same nonce.

Usage:
    risk-signal-bot            # loop forever
    risk-signal-bot --once     # single cycle (cron / CI)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from functools import partial
from typing import Callable, List, Optional

from risk_signal_bot.config import load_config_from_env
from risk_signal_bot.cycle import CycleReport, run_cycle
from risk_signal_bot.env_template import write_env_template
from risk_signal_bot.errors import ConfigError
from risk_signal_bot.infra import Infra
from risk_signal_bot.market import MarketReader
from risk_signal_bot.publisher import Publisher

logger = logging.getLogger("risk_signal_bot.daemon")


def run_loop(
    cycle: Callable[[], CycleReport],
    interval_seconds: float,
    *,
    once: bool = False,
    max_cycles: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Run cycles back to back at a fixed interval; returns cycles run."""
    n = 0
    while True:
        started = clock()
        cycle()
        n += 1

        if once or (max_cycles is not None and n >= max_cycles):
            return n

        elapsed = clock() - started
        sleep(max(0.0, interval_seconds - elapsed))


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # cycle records are one bare JSON object per line on stdout
    cycle_logger = logging.getLogger("risk_signal_bot.cycle")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    # records are logged at INFO; keep them regardless of --log-level
    cycle_logger.setLevel(logging.INFO)
    cycle_logger.addHandler(handler)
    cycle_logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="risk-signal-bot",
        description="Publish a Polymarket-derived risk tier to the RiskSignal contract.",
    )
    p.add_argument("--once", action="store_true", help="run a single cycle and exit")
    p.add_argument("--dry-run", action="store_true", help="log setTier instead of sending it")
    p.add_argument("--env-file", default=None, help="path to a .env file (default: search cwd)")
    p.add_argument(
        "--write-env-template",
        nargs="?",
        const=".env.template",
        default=None,
        metavar="PATH",
        help="write an env template and exit",
    )
    p.add_argument("--log-level", default="INFO")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.write_env_template:
        out = write_env_template(args.write_env_template)
        print(f"wrote: {out}")
        return 0

    configure_logging(args.log_level)

    try:
        cfg = load_config_from_env(args.env_file)
        dry_run = cfg.dry_run or args.dry_run

        infra = Infra(cfg)
        infra.connect()
    except ConfigError as e:
        logger.error("config error: %s", e)
        return 1
    except RuntimeError as e:
        logger.error("startup failed: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted during startup, stopping")
        return 0

    publisher = Publisher(
        infra,
        cfg.contract_address,
        gas_limit=cfg.gas_limit,
        receipt_timeout=cfg.receipt_timeout_seconds,
        dry_run=dry_run,
    )
    reader = MarketReader(cfg)

    logger.info("risk signal daemon started")
    logger.info("  updater: %s", publisher.address)
    logger.info("  contract: %s (%s)", publisher.contract_address, cfg.chain_selector_name)
    logger.info("  market: %s via %s (samples=%d)", cfg.market_id, cfg.market_source, cfg.consensus_samples)
    logger.info("  thresholds: green < %s, amber < %s", cfg.threshold_green_max, cfg.threshold_amber_max)
    logger.info("  interval: %.1fs%s", cfg.interval_seconds, " (DRY_RUN)" if dry_run else "")

    try:
        run_loop(
            partial(run_cycle, cfg, reader, publisher),
            cfg.interval_seconds,
            once=args.once,
        )
    except KeyboardInterrupt:
        logger.info("interrupted, stopping")
        return 0

    if args.once:
        logger.info("single run complete (--once mode)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
