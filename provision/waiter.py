import time
from abc import ABC, abstractmethod

from provision.constants import (
    DEFAULT_BACKOFF,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRIES,
    DEFAULT_SETTLE_DELAY,
    DELAY_STRATEGY,
    POLL_STRATEGY,
    ConfirmationStatus,
)
from provision.exceptions import ConfigurationError, ConfirmationTimeout, LedgerError
from provision.ledger import LedgerClient, Receipt
from provision.models import DeployedContract


class ConfirmationWaiter(ABC):
    """Blocks until a submitted transaction is safe to treat as durable."""

    def __init__(self, ledger: LedgerClient, sleep=time.sleep):
        self.ledger = ledger
        self._sleep = sleep

    @abstractmethod
    def await_confirmation(self, tx_hash: str, label: str) -> ConfirmationStatus:
        """Returns CONFIRMED or FAILED, or raises ConfirmationTimeout."""
        raise NotImplementedError

    def confirm(self, contract: DeployedContract) -> ConfirmationStatus:
        """Waits for a deployment and moves the contract out of PENDING."""
        try:
            status = self.await_confirmation(contract.tx_hash, contract.name)
        except ConfirmationTimeout as e:
            e.contract = contract
            raise
        contract.status = status
        return status


class ReceiptPollingWaiter(ConfirmationWaiter):
    """
    Polls the ledger for a final receipt, sleeping `interval` seconds after the
    first unconfirmed attempt and multiplying the pause by `backoff` after each
    further one. At most `retries` receipts are requested.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        retries: int = DEFAULT_RETRIES,
        interval: float = DEFAULT_POLL_INTERVAL,
        backoff: float = DEFAULT_BACKOFF,
        sleep=time.sleep,
    ):
        super().__init__(ledger, sleep=sleep)
        if retries < 1:
            raise ConfigurationError(f"Confirmation retries must be at least 1, got {retries}")
        if interval < 0 or backoff < 1:
            raise ConfigurationError(
                f"Invalid confirmation backoff: interval={interval}, backoff={backoff}"
            )
        self.retries = retries
        self.interval = interval
        self.backoff = backoff

    def await_confirmation(self, tx_hash: str, label: str) -> ConfirmationStatus:
        delay = self.interval
        last_error = None
        for attempt in range(1, self.retries + 1):
            try:
                receipt = self.ledger.get_receipt(tx_hash)
            except LedgerError as e:
                # an unreachable ledger counts as an unconfirmed attempt
                print(f"(!) Could not fetch the receipt of {label}: {e}")
                last_error = e
                receipt = Receipt(confirmed=False)
            if receipt.reverted:
                print(f"(!) {label} reverted (tx {tx_hash})")
                return ConfirmationStatus.FAILED
            if receipt.confirmed:
                print(f"(i) {label} confirmed (tx {tx_hash})")
                return ConfirmationStatus.CONFIRMED
            if attempt < self.retries:
                print(
                    f"\t{label} not confirmed yet (attempt {attempt}/{self.retries}); "
                    f"checking again in {delay}s"
                )
                self._sleep(delay)
                delay = delay * self.backoff

        message = f"{label} was not confirmed after {self.retries} attempt(s) (tx {tx_hash})"
        if last_error is not None:
            message = f"{message}; last receipt error: {last_error}"
        raise ConfirmationTimeout(message, tx_hash=tx_hash)


class FixedDelayWaiter(ConfirmationWaiter):
    """
    Waits a fixed settle delay without looking at receipts.
    Only for ledgers without a usable receipt API.
    """

    def __init__(self, ledger: LedgerClient, delay: float = DEFAULT_SETTLE_DELAY, sleep=time.sleep):
        super().__init__(ledger, sleep=sleep)
        if delay < 0:
            raise ConfigurationError(f"Settle delay cannot be negative, got {delay}")
        self.delay = delay

    def await_confirmation(self, tx_hash: str, label: str) -> ConfirmationStatus:
        print(f"(i) Waiting {self.delay}s for {label} to settle (tx {tx_hash})")
        self._sleep(self.delay)
        return ConfirmationStatus.CONFIRMED


def waiter_from_settings(ledger: LedgerClient, settings, sleep=time.sleep) -> ConfirmationWaiter:
    """Builds the waiter selected by a plan's confirmation settings."""
    if settings.strategy == POLL_STRATEGY:
        return ReceiptPollingWaiter(
            ledger,
            retries=settings.retries,
            interval=settings.interval,
            backoff=settings.backoff,
            sleep=sleep,
        )
    if settings.strategy == DELAY_STRATEGY:
        return FixedDelayWaiter(ledger, delay=settings.settle_delay, sleep=sleep)
    raise ConfigurationError(f"Unknown confirmation strategy '{settings.strategy}'")
