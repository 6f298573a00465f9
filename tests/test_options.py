import click
import pytest
from ape.utils import ZERO_ADDRESS

from provision.types import TokenAddress
from provision.utils import format_wei
from tests.conftest import TOKEN


def test_token_address():
    assert TokenAddress().convert(TOKEN.lower(), None, None) == TOKEN


@pytest.mark.parametrize("value", ["0x1234", "wston", ZERO_ADDRESS])
def test_invalid_token_address(value):
    with pytest.raises(click.BadParameter):
        TokenAddress().convert(value, None, None)


@pytest.mark.parametrize(
    "wei, formatted", [(10**18, "1 ETH"), (15 * 10**17, "1.5 ETH"), (0, "0 ETH")]
)
def test_format_wei(wei, formatted):
    assert format_wei(wei) == formatted
