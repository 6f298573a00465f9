import json
import typing
from pathlib import Path
from typing import Dict, Optional

from provision.constants import STANDARD_RECORD_JSON_FORMAT, ArtifactState
from provision.exceptions import ConfigurationError
from provision.models import DeploymentRecord
from provision.utils import _load_json


def read_record(filepath: Path) -> DeploymentRecord:
    data = _load_json(filepath)
    try:
        return DeploymentRecord.from_dict(data)
    except (KeyError, DeploymentRecord.Invalid) as e:
        raise ConfigurationError(f"Malformed deployment record at {filepath}: {e}") from e


def write_record(record: DeploymentRecord, filepath: Path) -> Path:
    """Writes the deployment record, replacing any previous version of it."""
    # Create the parent directory if it does not exist
    filepath.parent.mkdir(parents=True, exist_ok=True)

    temp_filepath = filepath.with_suffix(".tmp")
    with open(temp_filepath, "w") as file:
        json.dump(record.to_dict(), file, **STANDARD_RECORD_JSON_FORMAT)
    temp_filepath.replace(filepath)
    return filepath


def load_record(plan, fresh: bool = False) -> DeploymentRecord:
    """
    Returns the record of a previous run of the same plan, so that its confirmed
    steps can be skipped, or an empty record.
    """
    filepath = plan.record_filepath
    if fresh or not filepath.exists():
        print(f"Creating new deployment record at {filepath}.")
        return DeploymentRecord(
            plan_name=plan.name, plan_identity=plan.identity, chain_id=plan.chain_id
        )

    record = read_record(filepath)
    if record.plan_identity != plan.identity or record.chain_id != plan.chain_id:
        raise ConfigurationError(
            f"Deployment record at {filepath} belongs to a different plan "
            f"({record.plan_identity} on chain {record.chain_id})."
        )
    print(f"Resuming from deployment record at {filepath} ({len(record)} entries).")
    return record


def _describe(name: str, record: DeploymentRecord) -> str:
    notes = [record.get(name).status.name]
    binding = record.binding_of(name)
    if binding:
        notes.append(f"BOUND -> {binding.implementation}")
    if record.is_initialized(name):
        notes.append("INITIALIZED")
    return ", ".join(notes)


def print_record(
    record: DeploymentRecord,
    states: Optional[Dict[str, ArtifactState]] = None,
    error: Optional[Exception] = None,
) -> None:
    """Reports a (possibly partial) deployment record to the operator."""
    title = "Partial deployment record" if error else "Deployment record"
    print(f"\n{title} for {record.plan_name} (chain {record.chain_id}):")
    contracts = record.contracts
    if not contracts:
        print("\t(no confirmed contracts)")
    for name, contract in contracts.items():
        print(f"\t{name}={contract.address} [{_describe(name, record)}]")

    unrecorded = [
        (name, state)
        for name, state in (states or dict()).items()
        if name not in contracts and state != ArtifactState.NOT_DEPLOYED
    ]
    for name, state in unrecorded:
        print(f"\t{name} [{state.name}]")

    if error is not None:
        step = getattr(error, "step", None)
        kind = getattr(error, "kind", type(error).__name__)
        print(f"\n(!) {kind} during '{step}': {error}")


def summarize(record: DeploymentRecord) -> typing.Dict[str, str]:
    """Returns artifact name -> address for every confirmed contract."""
    return {name: contract.address for name, contract in record.contracts.items()}
