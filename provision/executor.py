from provision.exceptions import ConfigurationError, DeploymentFailure, LedgerError
from provision.ledger import LedgerClient
from provision.models import Artifact, DeployedContract
from provision.params import _is_resolved


class DeploymentExecutor:
    """Deploys one artifact at a time through the ledger client."""

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    def deploy(self, artifact: Artifact) -> DeployedContract:
        """
        Submits the deployment of an artifact whose constructor parameters are fully
        resolved and returns it as a PENDING contract. Rejections are not retried.
        """
        if not _is_resolved(artifact.constructor_params):
            raise ConfigurationError(
                f"Constructor parameters of {artifact.name} still reference undeployed contracts"
            )

        print(f"\nDeploying {artifact.name} (as type {artifact.contract_type})")
        try:
            address, tx_hash = self.ledger.deploy_contract(
                artifact.contract_type, list(artifact.constructor_params.values())
            )
        except LedgerError as e:
            raise DeploymentFailure(f"Deployment of {artifact.name} was rejected: {e}") from e

        print(f"{artifact.name} deployed to: {address}")
        return DeployedContract(
            name=artifact.name,
            contract_type=artifact.contract_type,
            address=address,
            tx_hash=tx_hash,
        )
