"""Daily check-in for the APR.IO wallet-collection service.

Responsibilities:
 - Logging setup (journald if available, else stderr)
 - One check-in attempt: sign in, checkIn() on Monad, report, refresh points
 - Mapping every expected failure to a CheckInOutcome for the scheduler
 - Entry point wiring config, wallet, API client and scheduler together
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import requests

try:  # Optional journald integration
    from systemd.journal import JournaldLogHandler  # type: ignore

    SYSTEMD_AVAILABLE = True
except ImportError:  # pragma: no cover - systemd rarely available in test
    SYSTEMD_AVAILABLE = False

from apr_checkin.api import AprClient, AuthenticationError, parse_timestamp_ms
from apr_checkin.config import Config, ConfigError, load_config
from apr_checkin.scheduler import CHECKIN_WINDOW_MS, CheckInOutcome, CheckInScheduler
from apr_checkin.wallet import (
    MONAD_CHAIN_ID,
    CheckInWallet,
    build_sign_message,
    is_already_checked_in,
    mask_address,
)

# Failures of the reporting call that still leave the loop running.
API_ERRORS = (requests.RequestException, jsonschema.ValidationError, ValueError)

logger = logging.getLogger(__name__)


def setup_logging(verbosity: str = "INFO") -> None:
    """Configure root logger for service (journald if available else stderr)."""
    level = getattr(logging, verbosity.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers[:]:  # Clear existing
        root.removeHandler(h)
    if SYSTEMD_AVAILABLE:  # pragma: no cover
        handler = JournaldLogHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)
    root.addHandler(handler)


def print_banner() -> None:
    print(
        """
╔═════════════════════════════════════════╗
║        APR.IO Auto Check-in Bot         ║
╚═════════════════════════════════════════╝
"""
    )


def print_section(title: str, body: str = "") -> None:
    """Print an operator-facing block; not part of the log stream."""
    line = "─" * 40
    print(f"\n{line}\n {title}\n{line}")
    if body:
        print(body)


def format_wallet_status(status: Dict[str, Any]) -> str:
    return (
        f"Check-in #{status.get('checkInCount') or '-'} | "
        f"Points: {status.get('points') or '-'} | "
        f"Transactions: {status.get('userTransactionCount') or '-'}"
    )


def format_quest_data(data: Any) -> str:
    """Render quest data as `key: value` pairs; lists are keyed by index."""
    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, list):
        items = enumerate(data)
    else:
        return str(data)
    return " | ".join(f"{k}: {v}" for k, v in items)


def format_time_ms(timestamp_ms: int, tz_name: str) -> str:
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    try:
        when = datetime.fromtimestamp(timestamp_ms / 1000, tz)
    except (OverflowError, OSError, ValueError):
        return str(timestamp_ms)
    return when.strftime("%Y-%m-%d %H:%M:%S %Z")


class CheckInAttempt:
    """One sign-in → checkIn() → report → refresh cycle for a single wallet.

    Calling the instance never raises for expected failures; it returns a
    CheckInOutcome instead. Only a failed sign-in is fatal.
    """

    def __init__(self, config: Config, wallet: CheckInWallet, client: AprClient) -> None:
        self.config = config
        self.wallet = wallet
        self.client = client

    @classmethod
    def from_config(cls, config: Config) -> "CheckInAttempt":
        wallet = CheckInWallet(config.private_key, config.rpc_url, config.receipt_timeout)
        client = AprClient(config.api_base_url, timeout=config.request_timeout)
        return cls(config, wallet, client)

    def __call__(self) -> CheckInOutcome:
        address = self.wallet.address
        logger.info("Starting check-in run for wallet %s", mask_address(address))

        try:
            self.authenticate()
        except Exception as e:
            logger.critical("Authentication failed: %s", e)
            return CheckInOutcome(succeeded=False, fatal=True)

        try:
            status = self.client.get_wallet_status(address)
            print_section("WALLET STATUS", format_wallet_status(status))
        except API_ERRORS as e:
            logger.warning("Could not fetch wallet status: %s", e)

        print_section("SMART CONTRACT CHECK-IN (MONAD)")
        try:
            tx_hash = self.wallet.send_check_in()
        except Exception as e:
            if is_already_checked_in(e):
                logger.warning("Contract rejected checkIn(), likely already checked in today: %s", e)
                return CheckInOutcome(succeeded=False)
            logger.error("Smart contract check-in failed: %s", e)
            return CheckInOutcome(succeeded=False)

        print_section("CHECK-IN TO APR.IO API")
        try:
            result = self.client.check_in(address, tx_hash, MONAD_CHAIN_ID)
        except API_ERRORS as e:
            logger.warning("API check-in failed (24h limit or server error): %s", e)
            return CheckInOutcome(succeeded=False, last_checkin_time_ms=self.last_checkin_from_status())

        last_checkin = parse_timestamp_ms(result.get("lastCheckinTime"))
        logger.info("Check-in accepted by API: %s", result.get("message", "ok"))
        if last_checkin is not None:
            tz = self.config.display_timezone
            logger.info("Last check-in: %s", format_time_ms(last_checkin, tz))
            logger.info("Next eligible check-in: %s", format_time_ms(last_checkin + CHECKIN_WINDOW_MS, tz))

        self.refresh_secondary_data()
        return CheckInOutcome(succeeded=True, last_checkin_time_ms=last_checkin)

    def authenticate(self) -> Dict[str, Any]:
        """Fetch a nonce, sign it and log in; raises AuthenticationError on any failure."""
        address = self.wallet.address
        try:
            nonce = self.client.get_nonce(address)
            message = build_sign_message(nonce)
            signature = self.wallet.sign_message(message)
        except Exception as e:
            raise AuthenticationError(f"Could not obtain sign-in nonce: {e}") from e
        login = self.client.login(address, signature, message)
        logger.info("Login successful, user id %s", login["user"]["id"])
        return login

    def last_checkin_from_status(self) -> Optional[int]:
        """Re-query wallet status for the server's last check-in time."""
        try:
            status = self.client.get_wallet_status(self.wallet.address)
        except API_ERRORS as e:
            logger.error("Could not fetch wallet status for next run time: %s; using default 24h wait", e)
            return None
        last_checkin = parse_timestamp_ms(status.get("lastCheckinTime"))
        if last_checkin is not None:
            logger.info(
                "Next run time from status: %s",
                format_time_ms(last_checkin + CHECKIN_WINDOW_MS, self.config.display_timezone),
            )
        return last_checkin

    def refresh_secondary_data(self) -> None:
        """Update points and print quest data; failures here never affect scheduling."""
        try:
            self.client.update_points()
            logger.info("Points updated")
        except API_ERRORS as e:
            logger.warning("Points update failed: %s", e)
        try:
            quests = self.client.collect_wallet_data(self.wallet.address)
            print_section("WALLET QUEST DATA", format_quest_data(quests))
        except (*API_ERRORS, AttributeError, TypeError) as e:
            logger.warning("Quest data fetch failed: %s", e)


def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging()
        logger.error("Configuration error: %s", e)
        return 1
    setup_logging(config.verbosity)

    print_banner()
    try:
        attempt = CheckInAttempt.from_config(config)
    except Exception as e:  # malformed private key
        logger.error("Configuration error: invalid PRIVATE_KEY (%s)", type(e).__name__)
        return 1

    scheduler = CheckInScheduler(attempt)
    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0
    logger.critical("Bot encountered a critical error and stopped the loop")
    return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
