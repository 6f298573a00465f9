import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, List, Optional, Set

from eth_typing import ChecksumAddress

from provision.config import is_missing
from provision.exceptions import ConfigurationError
from provision.models import DeploymentRecord


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        constants: typing.Dict[str, Any] = None,
        record: Optional[DeploymentRecord] = None,
        signer: Optional[Callable[[], ChecksumAddress]] = None,
    ):
        self.contract_names = contract_names or list()
        self.constants = constants or dict()
        self.record = record
        self.signer = signer


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    def __init__(self, context: VariableContext):
        self.context = context

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self) -> Any:
        if self.context.signer is None:
            raise ConfigurationError("No signer available to resolve '$deployer'")
        return self.context.signer()

    def __repr__(self):
        return f"${self.DEPLOYER_INDICATOR}"


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        self.constant_name = constant_name
        self.context = context

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self) -> Any:
        value = self.context.constants.get(self.constant_name)
        if value is None:
            raise ConfigurationError(f"Constant '{self.constant_name}' is not set.")
        return value

    def __repr__(self):
        return f"${self.constant_name}"


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ConfigurationError(f"Contract name {contract_name} not found")
        self.contract_name = contract_name
        self.context = context

    def resolve(self) -> Any:
        """Resolves the address of a sibling that is confirmed in the deployment record."""
        record = self.context.record
        if record is None or not record.is_confirmed(self.contract_name):
            raise ConfigurationError(
                f"{self.contract_name} has not been deployed and confirmed yet"
            )
        return record.address_of(self.contract_name)

    def __repr__(self):
        return f"${self.contract_name}"


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount(context)
    elif variable in context.contract_names:
        return ContractName(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: typing.Dict, variable_context: VariableContext) -> OrderedDict:
    if not isinstance(values, dict):
        raise ConfigurationError(f"Expected a mapping of named parameters, got {values!r}")
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _resolve_param(value: Any) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v) for v in value]

    if isinstance(value, Variable):
        return value.resolve()

    return value  # literally a value


def _resolve_params(parameters: OrderedDict) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value)

    return resolved_parameters


def _contract_references(value: Any) -> Set[str]:
    """Returns the names of the sibling contracts a (processed) value refers to."""
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        references = set()
        for v in value:
            references |= _contract_references(v)
        return references
    if isinstance(value, ContractName):
        return {value.contract_name}
    return set()


def _is_resolved(value: Any) -> bool:
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        return all(_is_resolved(v) for v in value)
    return not isinstance(value, Variable)


def check_required(parameters: OrderedDict, label: str) -> None:
    """Raises if any top-level parameter is absent or empty."""
    for name, value in parameters.items():
        if is_missing(value):
            raise ConfigurationError(f"Required parameter '{name}' for {label} is missing")
