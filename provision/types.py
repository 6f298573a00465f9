import click
from ape.utils import ZERO_ADDRESS
from eth_utils import is_address, to_checksum_address


class TokenAddress(click.ParamType):
    """An external token contract address; the zero address is never a token."""

    name = "token_address"

    def convert(self, value, param, ctx):
        if not is_address(value):
            self.fail(f"{value!r} is not an ethereum address", param, ctx)
        address = to_checksum_address(value)
        if address == ZERO_ADDRESS:
            self.fail("the zero address cannot stand in for a token contract", param, ctx)
        return address
