from provision.constants import DEFAULT_UPGRADE_METHOD, ConfirmationStatus
from provision.exceptions import BindingFailure, LedgerError
from provision.ledger import LedgerClient
from provision.models import DeployedContract, ProxyBinding
from provision.waiter import ConfirmationWaiter


class ProxyBinder:
    """Points upgradeable proxies at their implementations."""

    def __init__(self, ledger: LedgerClient, waiter: ConfirmationWaiter):
        self.ledger = ledger
        self.waiter = waiter

    def bind(
        self,
        proxy: DeployedContract,
        implementation: DeployedContract,
        method: str = DEFAULT_UPGRADE_METHOD,
    ) -> ProxyBinding:
        for contract in (proxy, implementation):
            if not contract.confirmed:
                raise BindingFailure(
                    f"Cannot bind {proxy.name} to {implementation.name}: "
                    f"{contract.name} is {contract.status.name}, not CONFIRMED"
                )

        print(f"\nUpgrading {proxy.name} at {proxy.address} to {implementation.name}")
        label = f"{proxy.name}.{method}"
        try:
            tx_hash = self.ledger.call_contract(
                proxy.address,
                method,
                [implementation.address],
                contract_type=proxy.contract_type,
            )
        except LedgerError as e:
            raise BindingFailure(f"{label}({implementation.address}) was rejected: {e}") from e

        status = self.waiter.await_confirmation(tx_hash, label)
        if status != ConfirmationStatus.CONFIRMED:
            raise BindingFailure(f"{label}({implementation.address}) reverted (tx {tx_hash})")

        print(f"{proxy.name} upgraded to {implementation.name}")
        return ProxyBinding(
            proxy=proxy.name,
            implementation=implementation.name,
            proxy_address=proxy.address,
            implementation_address=implementation.address,
            tx_hash=tx_hash,
        )
