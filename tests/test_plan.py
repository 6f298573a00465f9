import copy

import pytest

from provision.constants import BIND, DEPLOY, INITIALIZE, PLANS_DIR, TOKEN_ADDRESS
from provision.exceptions import ConfigurationError
from provision.plan import ProvisioningPlan, Step, plan_identity
from tests.conftest import TOKEN

STON_CONTRACTS = ["AssetFactory", "AssetFactoryProxy", "Treasury", "TreasuryProxy"]


def test_ston_plan(plan):
    assert plan.name == "ston-test"
    assert plan.chain_id == 1337
    assert list(plan.artifacts) == STON_CONTRACTS
    assert {p.proxy: p.implementation for p in plan.proxies.values()} == {
        "AssetFactoryProxy": "AssetFactory",
        "TreasuryProxy": "Treasury",
    }
    assert plan.initializers["AssetFactoryProxy"].contract_type == "AssetFactory"
    # defaults to the implementation type behind the proxy
    assert plan.initializers["TreasuryProxy"].contract_type == "Treasury"
    assert plan.initializers["TreasuryProxy"].dependencies() == {"AssetFactoryProxy"}
    assert plan.initializers["AssetFactoryProxy"].dependencies() == {"TreasuryProxy"}


def test_ston_steps(plan):
    assert plan.steps() == [
        Step(DEPLOY, "AssetFactory"),
        Step(DEPLOY, "AssetFactoryProxy"),
        Step(BIND, "AssetFactoryProxy"),
        Step(DEPLOY, "Treasury"),
        Step(DEPLOY, "TreasuryProxy"),
        Step(BIND, "TreasuryProxy"),
        Step(INITIALIZE, "AssetFactoryProxy"),
        Step(INITIALIZE, "TreasuryProxy"),
    ]
    assert str(plan.steps()[2]) == "bind AssetFactoryProxy"


def test_proxy_declared_before_implementation(plan_config):
    plan_config["contracts"] = [
        {"TreasuryProxy": {"proxy": {"implementation": "$Treasury"}}},
        "Treasury",
    ]
    plan_config["initializers"] = []
    plan = ProvisioningPlan.from_config(plan_config)
    assert plan.steps() == [
        Step(DEPLOY, "TreasuryProxy"),
        Step(DEPLOY, "Treasury"),
        Step(BIND, "TreasuryProxy"),
    ]


def test_deployment_order_follows_constructor_dependencies(plan_config):
    plan_config["contracts"] = [
        {"C": {"constructor": {"_b": "$B"}}},
        {"B": {"constructor": {"_a": "$A"}}},
        "A",
        "D",
    ]
    plan_config["initializers"] = []
    plan = ProvisioningPlan.from_config(plan_config)
    assert [a.name for a in plan.deployment_order()] == ["A", "B", "C", "D"]
    assert plan.dependencies_of("C") == {"B"}


def test_circular_constructor_dependencies(plan_config):
    plan_config["contracts"] = [
        {"A": {"constructor": {"_b": "$B"}}},
        {"B": {"constructor": {"_a": "$A"}}},
    ]
    plan_config["initializers"] = []
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(plan_config)


@pytest.mark.parametrize(
    "contracts",
    [
        [{"TreasuryProxy": {"proxy": {"implementation": "Treasury"}}}, "Treasury"],
        [{"TreasuryProxy": {"proxy": {"implementation": "$TreasuryProxy"}}}],
        [{"TreasuryProxy": {"proxy": {"implementation": "$Missing"}}}],
        ["Treasury", "Treasury"],
    ],
    ids=["literal", "self", "unknown", "duplicate"],
)
def test_invalid_contracts(plan_config, contracts):
    plan_config["contracts"] = contracts
    plan_config["initializers"] = []
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(plan_config)


def test_invalid_initializers(plan_config):
    bad_config = copy.deepcopy(plan_config)
    bad_config["initializers"].append({"Missing": {"args": {}}})
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(bad_config)

    twice = copy.deepcopy(plan_config)
    twice["initializers"].append(copy.deepcopy(twice["initializers"][1]))
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(twice)

    unknown_reference = copy.deepcopy(plan_config)
    unknown_reference["initializers"][1]["TreasuryProxy"]["args"]["_assetFactory"] = "$Nope"
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(unknown_reference)


@pytest.mark.parametrize("missing", ["deployment", "contracts"])
def test_missing_sections(plan_config, missing):
    del plan_config[missing]
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(plan_config)


def test_identity(plan_config):
    identity = plan_identity(plan_config)
    assert identity == plan_identity(copy.deepcopy(plan_config))

    # constants and confirmation settings do not change what is deployed
    plan_config["confirmation"]["retries"] = 99
    assert plan_identity(plan_config) == identity

    plan_config["contracts"].append("Extra")
    assert plan_identity(plan_config) != identity


def test_record_filepath(plan, tmp_path):
    assert plan.record_filepath.parent == tmp_path
    assert plan.record_filepath.name == f"ston-test-{plan.identity[:16]}.record.json"


def test_overrides(plan_config):
    plan_config["constants"][TOKEN_ADDRESS] = ""
    plan = ProvisioningPlan.from_config(plan_config)
    assert TOKEN_ADDRESS in plan.config.missing()

    plan.apply_overrides(token_address=TOKEN.lower(), strategy="delay", retries=5)
    assert plan.config.token_address == TOKEN
    assert plan.context.constants[TOKEN_ADDRESS] == TOKEN
    assert plan.confirmation.strategy == "delay"
    assert plan.confirmation.retries == 5
    assert TOKEN_ADDRESS not in plan.config.missing()


@pytest.mark.parametrize("network", ["zksync", "optimism"])
def test_bundled_plans(network):
    plan = ProvisioningPlan.from_yaml(PLANS_DIR / network / "ston.yml")
    assert list(plan.artifacts) == STON_CONTRACTS
    assert len(plan.steps()) == 8
    assert plan.config.tier_values == [10**28, 2 * 10**28, 3 * 10**28, 4 * 10**28]
    # the token address is supplied per run
    assert plan.config.missing() == [TOKEN_ADDRESS]


def test_uppercase_contract_names_are_references(plan_config):
    plan_config["contracts"] = [
        {"Treasury": {"constructor": {"_wston": "$WSTON", "_gas": "$GAS_LIMIT"}}},
        "WSTON",
    ]
    plan_config["initializers"] = []
    plan = ProvisioningPlan.from_config(plan_config)
    assert [a.name for a in plan.deployment_order()] == ["WSTON", "Treasury"]
    assert plan.dependencies_of("Treasury") == {"WSTON"}


def test_contract_names_cannot_shadow_constants(plan_config):
    plan_config["contracts"] = ["Treasury", "GAS_LIMIT"]
    plan_config["initializers"] = []
    with pytest.raises(ConfigurationError):
        ProvisioningPlan.from_config(plan_config)
