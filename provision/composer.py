from provision.config import is_missing
from provision.constants import ConfirmationStatus
from provision.exceptions import ConfigurationError, InitializationFailure, LedgerError
from provision.ledger import LedgerClient
from provision.models import DeployedContract, Initialization, InitializationParams
from provision.params import _resolve_param, _resolve_params, check_required
from provision.plan import Initializer
from provision.waiter import ConfirmationWaiter


class InitializationComposer:
    """
    Assembles initializer arguments from static configuration and the addresses of
    confirmed siblings, then invokes the one-time initializer through the component.

    Whether a component was already initialized is for the component to enforce;
    a revert of its guard surfaces as InitializationFailure.
    """

    def __init__(self, ledger: LedgerClient, waiter: ConfirmationWaiter):
        self.ledger = ledger
        self.waiter = waiter

    def compose(self, initializer: Initializer) -> InitializationParams:
        label = f"{initializer.name}.{initializer.method}"
        args = _resolve_params(initializer.args)
        check_required(args, label)

        gas_limit = None
        if initializer.gas_limit is not None:
            gas_limit = _resolve_param(initializer.gas_limit)
            if is_missing(gas_limit):
                raise ConfigurationError(f"Gas limit for {label} is missing")

        return InitializationParams(method=initializer.method, args=args, gas_limit=gas_limit)

    def initialize(
        self,
        component: DeployedContract,
        params: InitializationParams,
        contract_type: str = None,
    ) -> Initialization:
        label = f"{component.name}.{params.method}"
        check_required(params.args, label)
        if not component.confirmed:
            raise ConfigurationError(
                f"Cannot initialize {component.name}: it is {component.status.name}"
            )

        pretty_args = "\n\t".join(f"{k}={v}" for k, v in params.args.items())
        print(
            f"\nInitializing {component.name} at {component.address} "
            f"with arguments:\n\t{pretty_args}"
        )
        try:
            tx_hash = self.ledger.call_contract(
                component.address,
                params.method,
                params.values(),
                gas_limit=params.gas_limit,
                contract_type=contract_type or component.contract_type,
            )
        except LedgerError as e:
            raise InitializationFailure(f"{label} was rejected: {e}") from e

        status = self.waiter.await_confirmation(tx_hash, label)
        if status != ConfirmationStatus.CONFIRMED:
            raise InitializationFailure(f"{label} reverted (tx {tx_hash})")

        print(f"{component.name} initialized")
        return Initialization(
            name=component.name,
            address=component.address,
            method=params.method,
            tx_hash=tx_hash,
        )
