import copy
import signal
import threading
import typing
from collections import OrderedDict
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from provision.binder import ProxyBinder
from provision.composer import InitializationComposer
from provision.confirm import _confirm_resolution, _continue
from provision.constants import (
    BIND,
    DEPLOY,
    INITIALIZE,
    SIGNER,
    ArtifactState,
    ConfirmationStatus,
)
from provision.exceptions import (
    BindingFailure,
    ConfigurationError,
    DeploymentAborted,
    DeploymentFailure,
    ProvisioningError,
)
from provision.executor import DeploymentExecutor
from provision.ledger import LedgerClient
from provision.models import ContractName, DeploymentRecord, RecordEntry
from provision.params import _resolve_params
from provision.plan import ProvisioningPlan, Step
from provision.record import load_record, print_record, write_record
from provision.utils import format_wei
from provision.waiter import ConfirmationWaiter, waiter_from_settings

# a dependency in one of these states has a durable address
READY_STATES = (ArtifactState.CONFIRMED, ArtifactState.BOUND, ArtifactState.INITIALIZED)

TRANSITIONS = {
    ArtifactState.NOT_DEPLOYED: (ArtifactState.DEPLOYING,),
    ArtifactState.DEPLOYING: (ArtifactState.CONFIRMED,),
    ArtifactState.CONFIRMED: (ArtifactState.BOUND, ArtifactState.INITIALIZED),
    ArtifactState.BOUND: (ArtifactState.INITIALIZED,),
    ArtifactState.INITIALIZED: (),
    ArtifactState.ABORTED: (),
}


class Orchestrator:
    """
    Runs a provisioning plan step by step on behalf of a single signer.

    Steps are strictly sequential and every step waits for durability before the
    next one starts. The first failure aborts the run: the record accumulated so
    far is reported and the error is re-raised. Nothing is rolled back.
    """

    def __init__(
        self,
        plan: ProvisioningPlan,
        ledger: LedgerClient,
        waiter: Optional[ConfirmationWaiter] = None,
        record: Optional[DeploymentRecord] = None,
        record_filepath: Optional[Path] = None,
        autosign: bool = False,
    ):
        # variables resolve against this run's record and signer only
        self.plan = plan = copy.deepcopy(plan)
        self.ledger = ledger
        self.waiter = waiter or waiter_from_settings(ledger, plan.confirmation)
        self.executor = DeploymentExecutor(ledger)
        self.binder = ProxyBinder(ledger, self.waiter)
        self.composer = InitializationComposer(ledger, self.waiter)
        self.record_filepath = record_filepath
        self.autosign = autosign
        if record is None:
            record = DeploymentRecord(
                plan_name=plan.name, plan_identity=plan.identity, chain_id=plan.chain_id
            )
        self.record = record
        self.states: typing.Dict[ContractName, ArtifactState] = OrderedDict(
            (name, ArtifactState.NOT_DEPLOYED) for name in plan.artifacts
        )
        self.aborted = False
        self._abort_requested = False

        plan.context.record = self.record
        plan.context.signer = ledger.get_signer_address
        self._replay_record()

    @classmethod
    def from_plan(
        cls, plan: ProvisioningPlan, ledger: LedgerClient, fresh: bool = False, **kwargs
    ) -> "Orchestrator":
        """Builds an orchestrator that persists its record and resumes a previous run."""
        record = load_record(plan, fresh=fresh)
        return cls(plan, ledger, record=record, record_filepath=plan.record_filepath, **kwargs)

    @classmethod
    def from_yaml(cls, filepath: Path, ledger: LedgerClient, *args, **kwargs) -> "Orchestrator":
        plan = ProvisioningPlan.from_yaml(filepath)
        return cls.from_plan(plan, ledger, *args, **kwargs)

    def state_of(self, name: ContractName) -> ArtifactState:
        return self.states[name]

    def request_abort(self) -> None:
        """Asks the run to stop at the next step boundary."""
        self._abort_requested = True

    def run(self) -> DeploymentRecord:
        self._print_deployment_info()
        step = None
        with self._abort_on_signal():
            try:
                if not self.autosign:
                    # Confirms the start of the deployment.
                    _continue()
                for step in self.plan.steps():
                    if self._abort_requested:
                        raise DeploymentAborted(f"Abort requested before '{step}'")
                    self._execute(step)
            except ProvisioningError as error:
                self._abort(step, error)
                raise

        print_record(self.record, self.states)
        return self.record

    def _execute(self, step: Step) -> None:
        handlers = {
            DEPLOY: self._deploy,
            BIND: self._bind,
            INITIALIZE: self._initialize,
        }
        handlers[step.action](step)

    def _deploy(self, step: Step) -> None:
        name = step.target
        if self.record.is_confirmed(name):
            address = self.record.address_of(name)
            print(f"(i) Skipping deployment of {name}; confirmed at {address}")
            return

        self._require(self.plan.dependencies_of(name), step)
        artifact = self.plan.artifacts[name]
        resolved_params = _resolve_params(artifact.constructor_params)
        self._confirm(resolved_params, step)

        self._transition(name, ArtifactState.DEPLOYING)
        contract = self.executor.deploy(artifact.with_params(resolved_params))
        status = self.waiter.confirm(contract)
        if status != ConfirmationStatus.CONFIRMED:
            raise DeploymentFailure(f"Deployment of {name} reverted (tx {contract.tx_hash})")

        self._append(contract)
        self._transition(name, ArtifactState.CONFIRMED)

    def _bind(self, step: Step) -> None:
        declaration = self.plan.proxies[step.target]
        binding = self.record.binding_of(declaration.proxy)
        if binding and binding.implementation == declaration.implementation:
            print(f"(i) Skipping binding of {declaration.proxy}; already bound")
            return

        proxy = self.record.get(declaration.proxy)
        implementation = self.record.get(declaration.implementation)
        if proxy is None or implementation is None:
            raise BindingFailure(
                f"Cannot bind {declaration.proxy} to {declaration.implementation}: "
                f"both must be confirmed first"
            )
        self._confirm(OrderedDict(implementation=implementation.address), step)

        binding = self.binder.bind(proxy, implementation, method=declaration.method)
        self._append(binding)
        if self.states[declaration.proxy] != ArtifactState.BOUND:
            self._transition(declaration.proxy, ArtifactState.BOUND)

    def _initialize(self, step: Step) -> None:
        name = step.target
        initializer = self.plan.initializers[name]
        if self.record.is_initialized(name):
            print(f"(i) Skipping initialization of {name}; already initialized")
            return

        component = self.record.get(name)
        if component is None:
            raise ConfigurationError(f"{name} must be deployed before it is initialized")
        if name in self.plan.proxies and self.states[name] != ArtifactState.BOUND:
            raise ConfigurationError(f"{name} must be bound before it is initialized")
        self._require(initializer.dependencies(), step)

        params = self.composer.compose(initializer)
        self._confirm(params.args, step)

        initialization = self.composer.initialize(
            component, params, contract_type=initializer.contract_type
        )
        self._append(initialization)
        self._transition(name, ArtifactState.INITIALIZED)

    def _confirm(self, resolved_params: OrderedDict, step: Step) -> None:
        if self.autosign:
            return
        _confirm_resolution(resolved_params, str(step))
        if self._abort_requested:
            raise DeploymentAborted(f"Abort requested while confirming '{step}'")

    def _require(self, dependencies: typing.Set[ContractName], step: Step) -> None:
        for dependency in sorted(dependencies):
            if self.states.get(dependency) not in READY_STATES:
                raise ConfigurationError(f"Cannot {step}: {dependency} is not confirmed yet")

    def _transition(self, name: ContractName, state: ArtifactState) -> None:
        current = self.states[name]
        if state not in TRANSITIONS[current]:
            raise RuntimeError(f"Illegal transition of {name} from {current.name} to {state.name}")
        self.states[name] = state

    def _append(self, entry: RecordEntry) -> None:
        self.record.append(entry)
        if self.record_filepath is not None:
            write_record(self.record, self.record_filepath)

    def _replay_record(self) -> None:
        """Restores artifact states from a record of an earlier run."""
        for name in self.record.contracts:
            if name not in self.states:
                raise ConfigurationError(f"Deployment record contains unknown contract {name}")
            self.states[name] = ArtifactState.CONFIRMED
        for binding in self.record.bindings:
            self.states[binding.proxy] = ArtifactState.BOUND
        for initialization in self.record.initializations:
            self.states[initialization.name] = ArtifactState.INITIALIZED

    def _abort(self, step: Optional[Step], error: ProvisioningError) -> None:
        if error.step is None:
            error.step = step
        self.aborted = True
        if step is not None and self.states[step.target] != ArtifactState.INITIALIZED:
            self.states[step.target] = ArtifactState.ABORTED
        print_record(self.record, self.states, error=error)

    @contextmanager
    def _abort_on_signal(self):
        """Turns SIGINT / SIGTERM into an abort at the next step boundary."""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous_handlers = dict()
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        try:
            yield
        finally:
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)

    def _handle_signal(self, signum, frame) -> None:
        print(f"\n(!) Received {signal.Signals(signum).name}; aborting after the current step.")
        self.request_abort()

    def _print_deployment_info(self) -> None:
        balance = self.ledger.get_balance()
        print(
            f"Signer: {self.ledger.get_signer_address()}",
            f"Balance: {format_wei(balance) if balance is not None else 'unknown'}",
            f"Plan: {self.plan.path or self.plan.name}",
            f"Chain ID: {self.plan.chain_id}",
            f"Record: {self.record_filepath or '(not persisted)'}",
            f"Confirmation: {type(self.waiter).__name__}",
            sep="\n",
        )
        # the signer is provided by the ledger client
        missing = [key for key in self.plan.config.missing() if key != SIGNER]
        if missing:
            print(f"(!) Missing configuration: {', '.join(missing)}; steps needing it will fail.")
