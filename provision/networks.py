import os
from typing import Dict

from ape import networks, project
from ape.api.networks import LOCAL_NETWORK_NAME
from ape.contracts import ContractContainer, ContractInstance

from provision.exceptions import ConfigurationError, LedgerError


def is_local_network() -> bool:
    return networks.provider.network.name in (LOCAL_NETWORK_NAME, "local")


def check_chain_id(chain_id: int) -> None:
    """Checks that a plan is provisioned on the network it was written for."""
    connected_chain_id = networks.provider.network.chain_id
    if chain_id != connected_chain_id and not is_local_network():
        raise ConfigurationError(
            f"chain_id in plan file ({chain_id}) does not match "
            f"chain_id of current network ({connected_chain_id})."
        )


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar) if explorer_envvar else None
    if not api_key:
        raise ValueError(f"{explorer_envvar or 'Explorer API key'} is not set.")


def check_plugins(verify: bool) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()


def verify_contracts(contracts: Dict[str, ContractInstance]) -> None:
    """Publishes the sources of deployed artifacts, keyed by artifact name, to the explorer."""
    explorer = networks.provider.network.explorer
    if explorer is None:
        raise ConfigurationError(f"No explorer configured for {networks.provider.network.name}")
    for name, instance in contracts.items():
        print(f"(i) Verifying {name} ({instance.contract_type.name}) at {instance.address}...")
        explorer.publish_contract(instance.address)


def get_contract_container(contract_type: str) -> ContractContainer:
    """
    Finds a contract type in the project, or else in exactly one of its
    dependencies, so artifacts can name e.g. an OpenZeppelin proxy directly.
    """
    try:
        return getattr(project, contract_type)
    except AttributeError:
        pass

    matches = list()
    for dependency_name, dependency_versions in project.dependencies.items():
        for version, dependency_api in dependency_versions.items():
            try:
                container = getattr(dependency_api, contract_type)
            except AttributeError:
                continue
            matches.append((f"{dependency_name}@{version}", container))

    if not matches:
        raise LedgerError(
            f"Contract type '{contract_type}' is not in the project or its dependencies"
        )
    if len(matches) > 1:
        sources = ", ".join(source for source, _ in matches)
        raise LedgerError(f"Contract type '{contract_type}' is ambiguous; found in {sources}")
    return matches[0][1]
