import typing
from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional, Sequence

from eth_typing import ChecksumAddress


class Receipt(NamedTuple):
    confirmed: bool
    reverted: bool = False


class LedgerClient(ABC):
    """
    Submits deployments and calls on behalf of a single signer
    and reports when those transactions become durable.

    Rejected submissions (insufficient funds, reverted constructor,
    network errors) are raised as `provision.exceptions.LedgerError`.
    """

    @abstractmethod
    def deploy_contract(
        self, name: str, args: Sequence[Any]
    ) -> typing.Tuple[ChecksumAddress, str]:
        """Deploys the named contract type and returns its address and transaction hash."""
        raise NotImplementedError

    @abstractmethod
    def call_contract(
        self,
        address: ChecksumAddress,
        method: str,
        args: Sequence[Any],
        gas_limit: Optional[int] = None,
        contract_type: Optional[str] = None,
    ) -> str:
        """
        Transacts `method` on the contract at `address` and returns the transaction hash.
        `contract_type` names the ABI to use, which differs from the deployed
        type when calling an implementation through its proxy.
        """
        raise NotImplementedError

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> Receipt:
        raise NotImplementedError

    @abstractmethod
    def get_signer_address(self) -> ChecksumAddress:
        raise NotImplementedError

    def get_balance(self) -> Optional[int]:
        """Returns the signer balance in wei, if the client can tell."""
        return None
