import pytest

from provision.binder import ProxyBinder
from provision.constants import ConfirmationStatus
from provision.exceptions import BindingFailure
from provision.models import DeployedContract


@pytest.fixture
def binder(ledger, waiter):
    return ProxyBinder(ledger, waiter)


def _deploy(ledger, name, status=ConfirmationStatus.CONFIRMED):
    address, tx_hash = ledger.deploy_contract(name, [])
    return DeployedContract(name, name, address, tx_hash, status=status)


def test_bind(ledger, binder):
    implementation = _deploy(ledger, "Treasury")
    proxy = _deploy(ledger, "TreasuryProxy")

    binding = binder.bind(proxy, implementation)

    assert binding.proxy == "TreasuryProxy"
    assert binding.implementation == "Treasury"
    assert binding.proxy_address == proxy.address
    assert binding.implementation_address == implementation.address
    (call,) = ledger.calls_to("TreasuryProxy.upgradeTo")
    assert call[2] == [implementation.address]


def test_custom_upgrade_method(ledger, binder):
    implementation = _deploy(ledger, "Treasury")
    proxy = _deploy(ledger, "TreasuryProxy")
    binder.bind(proxy, implementation, method="upgradeToAndCall")
    assert ledger.calls_to("TreasuryProxy.upgradeToAndCall")


@pytest.mark.parametrize(
    "status", [ConfirmationStatus.PENDING, ConfirmationStatus.FAILED], ids=["pending", "failed"]
)
def test_unconfirmed_implementation_is_not_bound(ledger, binder, status):
    implementation = _deploy(ledger, "Treasury", status=status)
    proxy = _deploy(ledger, "TreasuryProxy")
    calls_before = list(ledger.calls)

    with pytest.raises(BindingFailure):
        binder.bind(proxy, implementation)

    # no upgrade was submitted
    assert ledger.calls == calls_before


def test_unconfirmed_proxy_is_not_bound(ledger, binder):
    implementation = _deploy(ledger, "Treasury")
    proxy = _deploy(ledger, "TreasuryProxy", status=ConfirmationStatus.PENDING)
    with pytest.raises(BindingFailure):
        binder.bind(proxy, implementation)
    assert not ledger.calls_to("TreasuryProxy.upgradeTo")


def test_rejected_upgrade(ledger, binder):
    ledger.rejected.add("TreasuryProxy.upgradeTo")
    with pytest.raises(BindingFailure):
        binder.bind(_deploy(ledger, "TreasuryProxy"), _deploy(ledger, "Treasury"))


def test_reverted_upgrade(ledger, binder):
    ledger.reverted.add("TreasuryProxy.upgradeTo")
    with pytest.raises(BindingFailure) as exc_info:
        binder.bind(_deploy(ledger, "TreasuryProxy"), _deploy(ledger, "Treasury"))
    assert "reverted" in str(exc_info.value)
