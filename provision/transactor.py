import typing
from collections import OrderedDict
from typing import Any, List, Optional, Sequence

from ape import accounts, chain
from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractInstance
from ape.exceptions import ApeException, TransactionNotFoundError
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from ethpm_types import MethodABI
from web3.auto import w3

from provision.constants import DEFAULT_REQUIRED_CONFIRMATIONS
from provision.exceptions import LedgerError
from provision.ledger import LedgerClient, Receipt
from provision.networks import get_contract_container, verify_contracts


def _match_method_abi(label: str, method_abis: List[MethodABI], args: Sequence[Any]) -> OrderedDict:
    """
    Picks the first overload of a method that can encode `args` and returns
    the arguments keyed by that overload's input names.
    """
    for abi in method_abis:
        if len(abi.inputs) != len(args):
            continue
        if all(w3.is_encodable(abi_input.type, arg) for abi_input, arg in zip(abi.inputs, args)):
            return OrderedDict(
                (abi_input.name or f"arg{position}", arg)
                for position, (abi_input, arg) in enumerate(zip(abi.inputs, args))
            )

    signatures = ", ".join(abi.signature for abi in method_abis) or "no ABI"
    raise LedgerError(
        f"{label} cannot encode {len(args)} argument(s) {list(args)}; has {signatures}"
    )


class ApeTransactor(LedgerClient):
    """
    Represents an ape account plus validated/annotated transaction execution.

    Transactions are submitted without waiting for confirmations;
    durability is established afterwards through `get_receipt`.
    Every ape failure surfaces as a LedgerError.
    """

    def __init__(
        self,
        account: Optional[AccountAPI] = None,
        signer_alias: Optional[str] = None,
        autosign: bool = False,
        verify: bool = False,
        required_confirmations: int = DEFAULT_REQUIRED_CONFIRMATIONS,
    ):
        if account is not None:
            self._account = account
        elif signer_alias:
            self._account = accounts.load(signer_alias)
        else:
            self._account = select_account()
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        # local test accounts always sign automatically
        if hasattr(self._account, "set_autosign"):
            self._account.set_autosign(autosign)
        self.verify = verify
        self.required_confirmations = required_confirmations
        self._deployments: typing.Dict[ChecksumAddress, ContractInstance] = dict()

    def get_signer_address(self) -> ChecksumAddress:
        return self._account.address

    def get_balance(self) -> Optional[int]:
        return self._account.balance

    def deploy_contract(self, name: str, args: Sequence[Any]) -> typing.Tuple[ChecksumAddress, str]:
        container = get_contract_container(name)
        try:
            instance = self._account.deploy(
                container,
                *args,
                publish=False,
                required_confirmations=0,
            )
        except ApeException as e:
            raise LedgerError(str(e)) from e

        address = to_checksum_address(instance.address)
        self._deployments[address] = instance
        return address, instance.txn_hash

    def _instance_at(
        self, address: ChecksumAddress, contract_type: Optional[str]
    ) -> ContractInstance:
        try:
            if contract_type is not None:
                return get_contract_container(contract_type).at(address)
            return chain.contracts.instance_at(address)
        except ApeException as e:
            raise LedgerError(f"No usable contract at {address}: {e}") from e

    def call_contract(
        self,
        address: ChecksumAddress,
        method: str,
        args: Sequence[Any],
        gas_limit: Optional[int] = None,
        contract_type: Optional[str] = None,
    ) -> str:
        instance = self._instance_at(address, contract_type)
        label = f"{instance.contract_type.name}[{address[:10]}].{method}"
        try:
            handler = getattr(instance, method)
        except AttributeError as e:
            raise LedgerError(f"{label} is not in the {instance.contract_type.name} ABI") from e

        named_args = _match_method_abi(label, handler.abis, args)
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            print(f"\nTransacting {label} with arguments:\n\t{pretty_args}")
        else:
            print(f"\nTransacting {label} with no arguments")

        kwargs = {"sender": self._account, "required_confirmations": 0}
        if gas_limit is not None:
            kwargs["gas"] = gas_limit
        try:
            receipt = handler(*args, **kwargs)
        except ApeException as e:
            raise LedgerError(str(e)) from e
        return receipt.txn_hash

    def get_receipt(self, tx_hash: str) -> Receipt:
        try:
            receipt = chain.provider.get_receipt(tx_hash, timeout=0)
            if receipt.failed:
                return Receipt(confirmed=False, reverted=True)
            depth = chain.blocks.height - receipt.block_number + 1
        except TransactionNotFoundError:
            return Receipt(confirmed=False)
        except ApeException as e:
            raise LedgerError(f"Receipt of {tx_hash} is unavailable: {e}") from e
        return Receipt(confirmed=depth >= self.required_confirmations)

    def publish(self, contracts: typing.Dict[str, ChecksumAddress]) -> None:
        """Verifies the sources of the named contracts this transactor deployed."""
        if not self.verify:
            return
        instances = OrderedDict(
            (name, self._deployments[address])
            for name, address in contracts.items()
            if address in self._deployments
        )
        verify_contracts(instances)
