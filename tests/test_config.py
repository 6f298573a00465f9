import pytest
from ape.utils import ZERO_ADDRESS

from provision.config import ConfirmationSettings, DeploymentConfig, is_missing
from provision.constants import (
    GAS_LIMIT,
    METADATA_URIS,
    SIGNER,
    TIER_VALUES,
    TOKEN_ADDRESS,
)
from provision.exceptions import ConfigurationError
from tests.conftest import TOKEN


@pytest.mark.parametrize("value", [None, "", "   ", ZERO_ADDRESS])
def test_missing_values(value):
    assert is_missing(value)


@pytest.mark.parametrize("value", [0, [], ["", ""], TOKEN])
def test_present_values(value):
    assert not is_missing(value)


def test_from_constants(plan_config):
    config = DeploymentConfig.from_constants(
        dict(plan_config["constants"], TOKEN_ADDRESS=TOKEN.lower(), FEE_RATE=42)
    )
    assert config.token_address == TOKEN
    assert config.extras == {"FEE_RATE": 42}
    assert config.as_constants()["FEE_RATE"] == 42
    assert config.missing() == []


def test_missing_keys_are_reported():
    config = DeploymentConfig.from_constants({GAS_LIMIT: 100})
    assert config.missing() == [SIGNER, TOKEN_ADDRESS, TIER_VALUES, METADATA_URIS]


@pytest.mark.parametrize(
    "constants",
    [
        {TOKEN_ADDRESS: "0x1234"},
        {TIER_VALUES: [1, -2]},
        {TIER_VALUES: [1, "2"]},
        {TIER_VALUES: "1,2"},
        {METADATA_URIS: [1, 2]},
        {TIER_VALUES: [1, 2], METADATA_URIS: ["a"]},
        {GAS_LIMIT: 0},
        {GAS_LIMIT: True},
        {"lowercase": 1},
    ],
)
def test_malformed_constants(constants):
    with pytest.raises(ConfigurationError):
        DeploymentConfig.from_constants(constants)


def test_malformed_config_is_a_value_error():
    with pytest.raises(ValueError):
        DeploymentConfig(gas_limit=-1)


def test_confirmation_settings():
    assert ConfirmationSettings.from_config({}) == ConfirmationSettings()
    settings = ConfirmationSettings.from_config(
        {"confirmation": {"strategy": "delay", "settle_delay": 30}}
    )
    assert settings.strategy == "delay"
    assert settings.settle_delay == 30


@pytest.mark.parametrize(
    "confirmation",
    [
        {"strategy": "sleep"},
        {"retries": 0},
        {"required_confirmations": -1},
        {"timeout": 60},
    ],
)
def test_invalid_confirmation_settings(confirmation):
    with pytest.raises(ConfigurationError):
        ConfirmationSettings.from_config({"confirmation": confirmation})
