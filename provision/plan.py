import hashlib
import json
import typing
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, NamedTuple, Optional

from provision.config import ConfirmationSettings, DeploymentConfig
from provision.constants import (
    ARTIFACTS_DIR,
    BIND,
    DEFAULT_INITIALIZE_METHOD,
    DEFAULT_UPGRADE_METHOD,
    DEPLOY,
    INITIALIZE,
    RECORD_SUFFIX,
    TOKEN_ADDRESS,
)
from provision.exceptions import ConfigurationError
from provision.models import Artifact, ContractName
from provision.params import (
    ContractName as ContractNameVariable,
    VariableContext,
    _contract_references,
    _process_raw_value,
    _process_raw_values,
)
from provision.utils import _load_yaml

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_PROXY_PARAMETER_KEY = "proxy"
CONTRACT_TYPE_KEY = "contract_type"


class ProxyDeclaration(NamedTuple):
    proxy: ContractName
    implementation: ContractName
    method: str = DEFAULT_UPGRADE_METHOD


class Initializer(NamedTuple):
    """A one-time initializer call on a deployed component."""

    name: ContractName
    contract_type: str
    method: str
    args: OrderedDict
    gas_limit: Any = None

    def dependencies(self) -> typing.Set[ContractName]:
        return _contract_references(self.args) | _contract_references([self.gas_limit])


class Step(NamedTuple):
    action: str
    target: ContractName

    def __str__(self):
        return f"{self.action} {self.target}"


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_names.extend(list(contract_info.keys()))
        else:
            raise ConfigurationError("Malformed contracts section in plan YAML.")

    duplicates = {name for name in contract_names if contract_names.count(name) > 1}
    if duplicates:
        raise ConfigurationError(f"Contract(s) declared more than once: {sorted(duplicates)}")
    return contract_names


def _single_entries(section: List[Any], section_name: str):
    """Yields (name, data) for a YAML list of names or single-key mappings."""
    for item in section:
        if isinstance(item, str):
            yield item, dict()
        elif isinstance(item, dict) and len(item) == 1:
            name = list(item.keys())[0]  # only one entry
            yield name, item[name] or dict()
        else:
            raise ConfigurationError(f"Malformed {section_name} section in plan YAML.")


def validate_config(config: typing.Dict) -> None:
    """Checks the top-level structure of a plan."""
    deployment = config.get("deployment")
    if not deployment:
        raise ConfigurationError("deployment is not set in plan file.")
    if not deployment.get("name"):
        raise ConfigurationError("deployment name is not set in plan file.")
    if not deployment.get("chain_id"):
        raise ConfigurationError("chain_id is not set in plan file.")
    if not config.get("contracts"):
        raise ConfigurationError("Plan file missing 'contracts' field.")


def plan_identity(config: typing.Dict) -> str:
    """Content address of everything that decides what a plan deploys and wires."""
    identifying = {
        "deployment": config.get("deployment"),
        "contracts": config.get("contracts"),
        "initializers": config.get("initializers") or list(),
    }
    encoded = json.dumps(identifying, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode()).hexdigest()


class ProvisioningPlan:
    """Artifacts to deploy, proxies to bind and components to initialize, in one network."""

    def __init__(
        self,
        name: str,
        chain_id: int,
        artifacts: "OrderedDict[ContractName, Artifact]",
        proxies: "OrderedDict[ContractName, ProxyDeclaration]",
        initializers: "OrderedDict[ContractName, Initializer]",
        config: DeploymentConfig,
        confirmation: ConfirmationSettings,
        context: VariableContext,
        identity: str,
        artifacts_dir: Path = ARTIFACTS_DIR,
        path: Optional[Path] = None,
    ):
        self.name = name
        self.chain_id = chain_id
        self.artifacts = artifacts
        self.proxies = proxies
        self.initializers = initializers
        self.config = config
        self.confirmation = confirmation
        self.context = context
        self.identity = identity
        self.artifacts_dir = artifacts_dir
        self.path = path
        self._order = self._deployment_order()

    @classmethod
    def from_yaml(cls, filepath: Path) -> "ProvisioningPlan":
        config = _load_yaml(filepath)
        return cls.from_config(config, path=filepath)

    @classmethod
    def from_config(cls, config: typing.Dict, path: Optional[Path] = None) -> "ProvisioningPlan":
        print("Processing provisioning plan...")
        validate_config(config)
        deployment = config["deployment"]
        contract_names = _get_contract_names(config)
        deployment_config = DeploymentConfig.from_constants(config.get("constants"))
        clashes = sorted(set(contract_names) & set(deployment_config.as_constants()))
        if clashes:
            raise ConfigurationError(f"Contract name(s) shadow plan constants: {clashes}")
        context = VariableContext(
            contract_names=contract_names, constants=deployment_config.as_constants()
        )

        artifacts = OrderedDict()
        proxies = OrderedDict()
        for contract_name, contract_data in _single_entries(config["contracts"], "contracts"):
            artifacts[contract_name] = cls._process_artifact(contract_name, contract_data, context)
            if CONTRACT_PROXY_PARAMETER_KEY in contract_data:
                proxies[contract_name] = cls._process_proxy(
                    contract_name, contract_data[CONTRACT_PROXY_PARAMETER_KEY], context
                )

        initializers = OrderedDict()
        for target, initializer_data in _single_entries(
            config.get("initializers") or list(), "initializers"
        ):
            if target in initializers:
                raise ConfigurationError(f"{target} is initialized more than once")
            initializers[target] = cls._process_initializer(
                target, initializer_data, artifacts, proxies, context
            )

        artifacts_dir = Path((config.get("artifacts") or dict()).get("dir", ARTIFACTS_DIR))
        return cls(
            name=deployment["name"],
            chain_id=int(deployment["chain_id"]),
            artifacts=artifacts,
            proxies=proxies,
            initializers=initializers,
            config=deployment_config,
            confirmation=ConfirmationSettings.from_config(config),
            context=context,
            identity=plan_identity(config),
            artifacts_dir=artifacts_dir,
            path=path,
        )

    @staticmethod
    def _process_artifact(
        contract_name: str, contract_data: typing.Dict, context: VariableContext
    ) -> Artifact:
        parameter_values = OrderedDict()
        if CONTRACT_CONSTRUCTOR_PARAMETER_KEY in contract_data:
            parameter_values = _process_raw_values(
                contract_data[CONTRACT_CONSTRUCTOR_PARAMETER_KEY] or dict(), context
            )
        contract_type = contract_data.get(CONTRACT_TYPE_KEY, contract_name)
        return Artifact(
            name=contract_name, contract_type=contract_type, constructor_params=parameter_values
        )

    @staticmethod
    def _process_proxy(
        contract_name: str, proxy_data: typing.Dict, context: VariableContext
    ) -> ProxyDeclaration:
        proxy_data = proxy_data or dict()
        implementation = _process_raw_value(proxy_data.get("implementation"), context)
        if not isinstance(implementation, ContractNameVariable):
            raise ConfigurationError(
                f"Proxy {contract_name} must name its implementation as '$<ContractName>'"
            )
        if implementation.contract_name == contract_name:
            raise ConfigurationError(f"Proxy {contract_name} cannot point at itself")
        return ProxyDeclaration(
            proxy=contract_name,
            implementation=implementation.contract_name,
            method=proxy_data.get("method", DEFAULT_UPGRADE_METHOD),
        )

    @staticmethod
    def _process_initializer(
        target: str,
        initializer_data: typing.Dict,
        artifacts: OrderedDict,
        proxies: OrderedDict,
        context: VariableContext,
    ) -> Initializer:
        if target not in artifacts:
            raise ConfigurationError(f"Cannot initialize unknown contract {target}")

        # calls through a proxy use the implementation's ABI
        if target in proxies:
            default_type = artifacts[proxies[target].implementation].contract_type
        else:
            default_type = artifacts[target].contract_type

        gas_limit = _process_raw_value(initializer_data.get("gas_limit"), context)
        return Initializer(
            name=target,
            contract_type=initializer_data.get(CONTRACT_TYPE_KEY, default_type),
            method=initializer_data.get("method", DEFAULT_INITIALIZE_METHOD),
            args=_process_raw_values(initializer_data.get("args") or dict(), context),
            gas_limit=gas_limit,
        )

    def _deployment_order(self) -> List[Artifact]:
        """
        Orders artifacts so that each one follows its constructor dependencies,
        keeping the declared order wherever the dependencies allow it.
        """
        order, placed = list(), set()
        remaining = list(self.artifacts.values())
        while remaining:
            for artifact in remaining:
                if _contract_references(artifact.constructor_params) <= placed:
                    break
            else:
                names = ", ".join(a.name for a in remaining)
                raise ConfigurationError(f"Circular constructor dependencies between {names}")
            remaining.remove(artifact)
            placed.add(artifact.name)
            order.append(artifact)
        return order

    def deployment_order(self) -> List[Artifact]:
        return list(self._order)

    def dependencies_of(self, name: ContractName) -> typing.Set[ContractName]:
        return _contract_references(self.artifacts[name].constructor_params)

    def steps(self) -> List[Step]:
        """
        Deployments in dependency order, each proxy bound as soon as both of its
        sides are deployed, then initializers in declared order.
        """
        steps, deployed = list(), set()
        unbound = list(self.proxies.values())
        for artifact in self._order:
            steps.append(Step(DEPLOY, artifact.name))
            deployed.add(artifact.name)
            for declaration in list(unbound):
                if {declaration.proxy, declaration.implementation} <= deployed:
                    steps.append(Step(BIND, declaration.proxy))
                    unbound.remove(declaration)
        for initializer in self.initializers.values():
            steps.append(Step(INITIALIZE, initializer.name))
        return steps

    @property
    def record_filepath(self) -> Path:
        return self.artifacts_dir / f"{self.name}-{self.identity[:16]}{RECORD_SUFFIX}"

    def apply_overrides(
        self,
        token_address: Optional[str] = None,
        strategy: Optional[str] = None,
        retries: Optional[int] = None,
    ) -> None:
        """Applies operator overrides given on the command line."""
        if token_address:
            constants = self.config.as_constants()
            constants[TOKEN_ADDRESS] = token_address
            self.config = DeploymentConfig.from_constants(constants)
            self.context.constants = self.config.as_constants()

        confirmation_overrides = {"strategy": strategy, "retries": retries}
        confirmation_overrides = {k: v for k, v in confirmation_overrides.items() if v is not None}
        if confirmation_overrides:
            self.confirmation = self.confirmation._replace(**confirmation_overrides)
