class LedgerError(Exception):
    """Raised by a ledger client when a transaction is rejected or reverts on submission."""


class ProvisioningError(Exception):
    """Base class for every failure that aborts a provisioning run."""

    def __init__(self, message: str, step=None):
        super().__init__(message)
        self.step = step

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class DeploymentFailure(ProvisioningError):
    """Raised when an artifact deployment is rejected or reverted."""


class ConfirmationTimeout(ProvisioningError):
    """Raised when durability is not observed within the waiter's budget."""

    def __init__(self, message: str, tx_hash: str = None, contract=None, step=None):
        super().__init__(message, step=step)
        self.tx_hash = tx_hash
        self.contract = contract


class BindingFailure(ProvisioningError):
    """Raised when a proxy upgrade call reverts or its preconditions are not met."""


class ConfigurationError(ProvisioningError, ValueError):
    """Raised when a required parameter is missing or malformed."""


class InitializationFailure(ProvisioningError):
    """Raised when an initializer call reverts, including a tripped double-initialization guard."""


class DeploymentAborted(ProvisioningError):
    """Raised at a step boundary when the operator or a signal requested an abort."""
