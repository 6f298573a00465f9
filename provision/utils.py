import json
from pathlib import Path

import yaml
from web3 import Web3


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def format_wei(value: int) -> str:
    """Formats the deployer balance in ether."""
    return f"{Web3.from_wei(value, 'ether')} ETH"
