from enum import IntEnum
from pathlib import Path

import provision

#
# Filesystem
#

PROVISION_DIR = Path(provision.__file__).parent
PLANS_DIR = PROVISION_DIR / "plans"
ARTIFACTS_DIR = PROVISION_DIR / "artifacts"

RECORD_SUFFIX = ".record.json"
STANDARD_RECORD_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}

#
# Networks
#

OPTIMISM = "optimism"
ZKSYNC = "zksync"

#
# Contracts
#

DEFAULT_UPGRADE_METHOD = "upgradeTo"
DEFAULT_INITIALIZE_METHOD = "initialize"

#
# Configuration keys
#

SIGNER = "SIGNER"
TOKEN_ADDRESS = "TOKEN_ADDRESS"
TIER_VALUES = "TIER_VALUES"
METADATA_URIS = "METADATA_URIS"
GAS_LIMIT = "GAS_LIMIT"

REQUIRED_CONFIG_KEYS = [SIGNER, TOKEN_ADDRESS, TIER_VALUES, METADATA_URIS, GAS_LIMIT]

#
# Confirmation
#

POLL_STRATEGY = "poll"
DELAY_STRATEGY = "delay"

CONFIRMATION_STRATEGIES = [POLL_STRATEGY, DELAY_STRATEGY]

DEFAULT_RETRIES = 10
DEFAULT_POLL_INTERVAL = 2  # seconds
DEFAULT_BACKOFF = 2
DEFAULT_REQUIRED_CONFIRMATIONS = 1
DEFAULT_SETTLE_DELAY = 30  # seconds

#
# Steps
#

DEPLOY = "deploy"
BIND = "bind"
INITIALIZE = "initialize"


class ConfirmationStatus(IntEnum):
    PENDING = 0
    CONFIRMED = 1
    FAILED = 2


class ArtifactState(IntEnum):
    NOT_DEPLOYED = 0
    DEPLOYING = 1
    CONFIRMED = 2
    BOUND = 3
    INITIALIZED = 4
    ABORTED = 5
