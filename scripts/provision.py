#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from provision.exceptions import ProvisioningError
from provision.networks import check_chain_id, check_plugins
from provision.options import (
    auto_option,
    fresh_option,
    plan_option,
    retries_option,
    strategy_option,
    token_address_option,
    verify_option,
)
from provision.orchestrator import Orchestrator
from provision.plan import ProvisioningPlan
from provision.record import summarize
from provision.transactor import ApeTransactor


@click.command(cls=ConnectedProviderCommand, name="provision")
@account_option()
@network_option(required=True)
@plan_option
@auto_option
@verify_option
@fresh_option
@strategy_option
@retries_option
@token_address_option
def cli(
    account,
    network,
    plan_filepath,
    auto,
    verify,
    fresh,
    strategy,
    retries,
    token_address,
):
    """Deploy, bind and initialize the contracts of a provisioning plan."""

    # Setup
    check_plugins(verify=verify)
    click.echo(f"Connected to {network.name} network.")

    try:
        plan = ProvisioningPlan.from_yaml(plan_filepath)
        plan.apply_overrides(token_address=token_address, strategy=strategy, retries=retries)
        check_chain_id(plan.chain_id)
    except ProvisioningError as e:
        raise click.ClickException(str(e))

    transactor = ApeTransactor(
        account=account,
        autosign=auto,
        verify=verify,
        required_confirmations=plan.confirmation.required_confirmations,
    )
    orchestrator = Orchestrator.from_plan(plan, transactor, fresh=fresh, autosign=auto)
    try:
        record = orchestrator.run()
    except ProvisioningError:
        # the partial record and the error were already reported
        raise SystemExit(1)

    transactor.publish(summarize(record))


if __name__ == "__main__":
    cli()
