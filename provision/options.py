from pathlib import Path

import click

from provision.constants import CONFIRMATION_STRATEGIES
from provision.types import TokenAddress

plan_option = click.option(
    "--plan",
    "-p",
    "plan_filepath",
    help="Provisioning plan YAML file.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

auto_option = click.option(
    "--auto",
    help="Automatically sign transactions and skip step confirmations.",
    is_flag=True,
)

verify_option = click.option(
    "--verify",
    help="Verify deployed contracts on the network explorer.",
    is_flag=True,
)

fresh_option = click.option(
    "--fresh",
    help="Ignore the deployment record of a previous run and deploy everything again.",
    is_flag=True,
)

strategy_option = click.option(
    "--strategy",
    "-s",
    help="How to wait for transactions to become durable; overrides the plan.",
    type=click.Choice(CONFIRMATION_STRATEGIES),
    required=False,
)

retries_option = click.option(
    "--retries",
    "-r",
    help="Number of receipt checks before giving up on a transaction; overrides the plan.",
    type=click.IntRange(min=1),
    required=False,
)

token_address_option = click.option(
    "--token-address",
    "-t",
    help="External token contract address; overrides TOKEN_ADDRESS of the plan.",
    type=TokenAddress(),
    required=False,
)
