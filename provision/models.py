import typing
from collections import OrderedDict
from typing import Any, Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress

from provision.constants import ConfirmationStatus

ContractName = str


class Artifact(NamedTuple):
    """A named deployable unit of the plan."""

    name: ContractName
    contract_type: str
    constructor_params: OrderedDict = OrderedDict()

    def with_params(self, resolved_params: OrderedDict) -> "Artifact":
        """Returns a copy of this artifact carrying resolved constructor parameters."""
        return self._replace(constructor_params=resolved_params)


class DeployedContract:
    """
    The result of deploying an artifact.
    Only a confirmation waiter moves the status away from PENDING.
    """

    def __init__(
        self,
        name: ContractName,
        contract_type: str,
        address: ChecksumAddress,
        tx_hash: str,
        status: ConfirmationStatus = ConfirmationStatus.PENDING,
    ):
        self.name = name
        self.contract_type = contract_type
        self.address = address
        self.tx_hash = tx_hash
        self.status = status

    @property
    def confirmed(self) -> bool:
        return self.status == ConfirmationStatus.CONFIRMED

    def __repr__(self):
        return f"DeployedContract({self.name}@{self.address}, {self.status.name})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "contract",
            "name": self.name,
            "contract_type": self.contract_type,
            "address": self.address,
            "tx_hash": self.tx_hash,
            "status": self.status.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployedContract":
        return cls(
            name=data["name"],
            contract_type=data["contract_type"],
            address=data["address"],
            tx_hash=data["tx_hash"],
            status=ConfirmationStatus[data["status"]],
        )


class ProxyBinding(NamedTuple):
    """A proxy pointed at an implementation. Re-binding is a new entry."""

    proxy: ContractName
    implementation: ContractName
    proxy_address: ChecksumAddress
    implementation_address: ChecksumAddress
    tx_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "binding", **self._asdict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProxyBinding":
        return cls(**{field: data[field] for field in cls._fields})


class InitializationParams(NamedTuple):
    method: str
    args: OrderedDict
    gas_limit: Optional[int] = None

    def values(self) -> List[Any]:
        return list(self.args.values())


class Initialization(NamedTuple):
    """Proof that the one-time initializer of a component went through."""

    name: ContractName
    address: ChecksumAddress
    method: str
    tx_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "initialization", **self._asdict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Initialization":
        return cls(**{field: data[field] for field in cls._fields})


RecordEntry = typing.Union[DeployedContract, ProxyBinding, Initialization]

ENTRY_TYPES = {
    "contract": DeployedContract,
    "binding": ProxyBinding,
    "initialization": Initialization,
}


class DeploymentRecord:
    """
    The append-only log of everything a provisioning run produced.
    Only confirmed contracts are recorded, and a recorded address is never reassigned.
    """

    class Invalid(Exception):
        """Raised when an entry would violate the record's invariants"""

    def __init__(
        self,
        plan_name: str = None,
        plan_identity: str = None,
        chain_id: int = None,
        entries: List[RecordEntry] = None,
    ):
        self.plan_name = plan_name
        self.plan_identity = plan_identity
        self.chain_id = chain_id
        self._entries: List[RecordEntry] = list()
        for entry in entries or list():
            self.append(entry)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> List[RecordEntry]:
        return list(self._entries)

    @property
    def contracts(self) -> "OrderedDict[ContractName, DeployedContract]":
        return OrderedDict(
            (e.name, e) for e in self._entries if isinstance(e, DeployedContract)
        )

    @property
    def bindings(self) -> List[ProxyBinding]:
        return [e for e in self._entries if isinstance(e, ProxyBinding)]

    @property
    def initializations(self) -> List[Initialization]:
        return [e for e in self._entries if isinstance(e, Initialization)]

    def get(self, name: ContractName) -> Optional[DeployedContract]:
        return self.contracts.get(name)

    def address_of(self, name: ContractName) -> Optional[ChecksumAddress]:
        contract = self.get(name)
        return contract.address if contract else None

    def is_confirmed(self, name: ContractName) -> bool:
        contract = self.get(name)
        return contract is not None and contract.confirmed

    def binding_of(self, proxy: ContractName) -> Optional[ProxyBinding]:
        """Returns the latest binding of a proxy."""
        bindings = [b for b in self.bindings if b.proxy == proxy]
        return bindings[-1] if bindings else None

    def is_initialized(self, name: ContractName) -> bool:
        return any(i.name == name for i in self.initializations)

    def append(self, entry: RecordEntry) -> None:
        if isinstance(entry, DeployedContract):
            self._check_contract(entry)
        elif isinstance(entry, ProxyBinding):
            self._check_confirmed(entry.proxy, entry.proxy_address)
            self._check_confirmed(entry.implementation, entry.implementation_address)
        elif isinstance(entry, Initialization):
            self._check_confirmed(entry.name, entry.address)
        else:
            raise self.Invalid(f"Unsupported record entry {entry!r}")
        self._entries.append(entry)

    def _check_contract(self, contract: DeployedContract) -> None:
        if not contract.confirmed:
            raise self.Invalid(
                f"Only confirmed contracts are recorded; {contract.name} is {contract.status.name}"
            )
        existing = self.get(contract.name)
        if existing is not None:
            raise self.Invalid(
                f"{contract.name} is already recorded at {existing.address}; "
                f"refusing to reassign it to {contract.address}"
            )

    def _check_confirmed(self, name: ContractName, address: ChecksumAddress) -> None:
        contract = self.get(name)
        if contract is None or not contract.confirmed:
            raise self.Invalid(f"{name} is not a confirmed contract of this record")
        if contract.address != address:
            raise self.Invalid(
                f"{name} is recorded at {contract.address}, not {address}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": {
                "name": self.plan_name,
                "identity": self.plan_identity,
                "chain_id": self.chain_id,
            },
            "entries": [entry.to_dict() for entry in self._entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        plan = data.get("plan", {})
        entries = list()
        for entry_data in data.get("entries", []):
            entry_type = ENTRY_TYPES.get(entry_data.get("type"))
            if entry_type is None:
                raise cls.Invalid(f"Unknown record entry type '{entry_data.get('type')}'")
            entries.append(entry_type.from_dict(entry_data))
        return cls(
            plan_name=plan.get("name"),
            plan_identity=plan.get("identity"),
            chain_id=plan.get("chain_id"),
            entries=entries,
        )
