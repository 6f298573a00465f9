import typing
from typing import Any, Dict, List, NamedTuple, Optional

from ape.utils import ZERO_ADDRESS
from eth_utils import is_address, to_checksum_address

from provision.constants import (
    CONFIRMATION_STRATEGIES,
    DEFAULT_BACKOFF,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUIRED_CONFIRMATIONS,
    DEFAULT_RETRIES,
    DEFAULT_SETTLE_DELAY,
    GAS_LIMIT,
    METADATA_URIS,
    POLL_STRATEGY,
    REQUIRED_CONFIG_KEYS,
    SIGNER,
    TIER_VALUES,
    TOKEN_ADDRESS,
)
from provision.exceptions import ConfigurationError


def is_missing(value: Any) -> bool:
    """Returns True for values that cannot stand in for a required parameter."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == "" or value == ZERO_ADDRESS
    return False


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class DeploymentConfig:
    """
    The network-specific values a plan is provisioned with.

    Formats are checked as soon as the object is built. Absent values are
    allowed here and only become fatal at the step that needs them.
    """

    def __init__(
        self,
        signer: Optional[str] = None,
        token_address: Optional[str] = None,
        tier_values: Optional[List[int]] = None,
        metadata_uris: Optional[List[str]] = None,
        gas_limit: Optional[int] = None,
        extras: Optional[Dict[str, Any]] = None,
    ):
        self.signer = signer
        self.token_address = token_address
        self.tier_values = tier_values
        self.metadata_uris = metadata_uris
        self.gas_limit = gas_limit
        self.extras = dict(extras or dict())
        self.validate()

    @classmethod
    def from_constants(cls, constants: Optional[Dict[str, Any]]) -> "DeploymentConfig":
        constants = dict(constants or dict())
        for name in constants:
            if not name.isupper():
                raise ConfigurationError(f"Constant names must be uppercase, got '{name}'")
        return cls(
            signer=constants.pop(SIGNER, None),
            token_address=constants.pop(TOKEN_ADDRESS, None),
            tier_values=constants.pop(TIER_VALUES, None),
            metadata_uris=constants.pop(METADATA_URIS, None),
            gas_limit=constants.pop(GAS_LIMIT, None),
            extras=constants,
        )

    def validate(self) -> None:
        if self.signer is not None and not isinstance(self.signer, str):
            raise ConfigurationError(f"{SIGNER} must be an account alias, got {self.signer!r}")

        if not is_missing(self.token_address):
            if not is_address(self.token_address):
                raise ConfigurationError(
                    f"{TOKEN_ADDRESS} is not a valid address: {self.token_address!r}"
                )
            self.token_address = to_checksum_address(self.token_address)

        if self.tier_values is not None:
            if not isinstance(self.tier_values, list):
                raise ConfigurationError(f"{TIER_VALUES} must be a list of integers")
            for position, value in enumerate(self.tier_values):
                if not _is_int(value) or value < 0:
                    raise ConfigurationError(
                        f"{TIER_VALUES} entry at position {position} is not a "
                        f"non-negative integer: {value!r}"
                    )

        if self.metadata_uris is not None:
            if not isinstance(self.metadata_uris, list) or not all(
                isinstance(uri, str) for uri in self.metadata_uris
            ):
                raise ConfigurationError(f"{METADATA_URIS} must be a list of strings")
            if self.tier_values is not None and len(self.metadata_uris) != len(self.tier_values):
                raise ConfigurationError(
                    f"{METADATA_URIS} has {len(self.metadata_uris)} entries but "
                    f"{TIER_VALUES} has {len(self.tier_values)}"
                )

        if self.gas_limit is not None and (not _is_int(self.gas_limit) or self.gas_limit <= 0):
            raise ConfigurationError(
                f"{GAS_LIMIT} must be a positive integer, got {self.gas_limit!r}"
            )

    def as_constants(self) -> Dict[str, Any]:
        constants = dict(self.extras)
        constants.update(
            {
                SIGNER: self.signer,
                TOKEN_ADDRESS: self.token_address,
                TIER_VALUES: self.tier_values,
                METADATA_URIS: self.metadata_uris,
                GAS_LIMIT: self.gas_limit,
            }
        )
        return constants

    def missing(self) -> List[str]:
        """Returns the enumerated configuration keys that have no usable value."""
        constants = self.as_constants()
        return [key for key in REQUIRED_CONFIG_KEYS if is_missing(constants[key])]


class ConfirmationSettings(NamedTuple):
    strategy: str = POLL_STRATEGY
    retries: int = DEFAULT_RETRIES
    interval: float = DEFAULT_POLL_INTERVAL
    backoff: float = DEFAULT_BACKOFF
    required_confirmations: int = DEFAULT_REQUIRED_CONFIRMATIONS
    settle_delay: float = DEFAULT_SETTLE_DELAY

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ConfirmationSettings":
        data = config.get("confirmation") or dict()
        unknown = set(data) - set(cls._fields)
        if unknown:
            raise ConfigurationError(
                f"Unknown confirmation setting(s): {', '.join(sorted(unknown))}"
            )
        settings = cls(**data)
        if settings.strategy not in CONFIRMATION_STRATEGIES:
            raise ConfigurationError(
                f"Confirmation strategy must be one of {CONFIRMATION_STRATEGIES}, "
                f"got '{settings.strategy}'"
            )
        if not _is_int(settings.retries) or settings.retries < 1:
            raise ConfigurationError("Confirmation retries must be at least 1")
        if not _is_int(settings.required_confirmations) or settings.required_confirmations < 0:
            raise ConfigurationError("Required confirmations cannot be negative")
        return settings
