import copy

import pytest
from eth_utils import to_checksum_address

from provision.constants import GAS_LIMIT, METADATA_URIS, SIGNER, TIER_VALUES, TOKEN_ADDRESS
from provision.exceptions import LedgerError
from provision.ledger import LedgerClient, Receipt
from provision.plan import ProvisioningPlan
from provision.waiter import ReceiptPollingWaiter

# Common constants
CHAIN_ID = 1337
RETRIES = 3
DEPLOYER_ADDRESS = to_checksum_address("0x" + "de" * 20)
TOKEN = to_checksum_address("0x" + "ab" * 20)
WSTON_VALUES = [10**28, 2 * 10**28, 3 * 10**28, 4 * 10**28]
TOKEN_URIS = ["", "", "", ""]


class FakeLedger(LedgerClient):
    """
    In-memory ledger. Transactions are keyed by the deployed contract type,
    or by "<deployed type>.<method>" for calls, so tests can make them fail.
    """

    def __init__(self, signer: str = DEPLOYER_ADDRESS):
        self.signer = signer
        self.calls = list()
        self.receipt_requests = list()
        self.rejected = set()
        self.reverted = set()
        self.unconfirmed = set()
        self.unreachable = set()
        self.on_submit = None
        self._types = dict()
        self._keys = dict()
        self._nonce = 0

    def _submit(self, key: str) -> str:
        if key in self.rejected:
            raise LedgerError(f"{key} rejected: insufficient funds")
        self._nonce += 1
        tx_hash = "0x" + f"{self._nonce:064x}"
        self._keys[tx_hash] = key
        if self.on_submit is not None:
            self.on_submit(key)
        return tx_hash

    def deploy_contract(self, name, args):
        tx_hash = self._submit(name)
        address = to_checksum_address("0x" + f"{0xC0DE0000 + self._nonce:040x}")
        self._types[address] = name
        self.calls.append(("deploy", name, list(args)))
        return address, tx_hash

    def call_contract(self, address, method, args, gas_limit=None, contract_type=None):
        key = f"{self._types[address]}.{method}"
        tx_hash = self._submit(key)
        self.calls.append(("call", key, list(args), gas_limit, contract_type))
        return tx_hash

    def get_receipt(self, tx_hash):
        key = self._keys[tx_hash]
        self.receipt_requests.append(key)
        if key in self.unreachable:
            raise LedgerError("connection reset")
        if key in self.reverted:
            return Receipt(confirmed=False, reverted=True)
        if key in self.unconfirmed:
            return Receipt(confirmed=False)
        return Receipt(confirmed=True)

    def get_signer_address(self):
        return self.signer

    def calls_to(self, key):
        return [call for call in self.calls if call[1] == key]


def ston_plan_config(artifacts_dir) -> dict:
    return {
        "deployment": {"name": "ston-test", "chain_id": CHAIN_ID},
        "artifacts": {"dir": str(artifacts_dir)},
        "confirmation": {"strategy": "poll", "retries": RETRIES, "interval": 0, "backoff": 1},
        "constants": {
            SIGNER: "test-deployer",
            TOKEN_ADDRESS: TOKEN,
            TIER_VALUES: list(WSTON_VALUES),
            METADATA_URIS: list(TOKEN_URIS),
            GAS_LIMIT: 10000000,
        },
        "contracts": [
            "AssetFactory",
            {"AssetFactoryProxy": {"proxy": {"implementation": "$AssetFactory"}}},
            "Treasury",
            {"TreasuryProxy": {"proxy": {"implementation": "$Treasury"}}},
        ],
        "initializers": [
            {
                "AssetFactoryProxy": {
                    "contract_type": "AssetFactory",
                    "gas_limit": "$GAS_LIMIT",
                    "args": {
                        "_owner": "$deployer",
                        "_wston": "$TOKEN_ADDRESS",
                        "_treasury": "$TreasuryProxy",
                        "_wstonValues": "$TIER_VALUES",
                        "_tokenURIs": "$METADATA_URIS",
                    },
                }
            },
            {
                "TreasuryProxy": {
                    "args": {"_wston": "$TOKEN_ADDRESS", "_assetFactory": "$AssetFactoryProxy"}
                }
            },
        ],
    }


# Fixtures
@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def sleeps():
    return list()


@pytest.fixture
def waiter(ledger, sleeps):
    return ReceiptPollingWaiter(ledger, retries=RETRIES, interval=1, backoff=2, sleep=sleeps.append)


@pytest.fixture
def plan_config(tmp_path):
    return ston_plan_config(tmp_path)


@pytest.fixture
def plan(plan_config):
    return ProvisioningPlan.from_config(copy.deepcopy(plan_config))
