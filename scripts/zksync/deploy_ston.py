#!/usr/bin/python3

from provision.constants import PLANS_DIR, ZKSYNC
from provision.networks import check_chain_id, check_plugins
from provision.orchestrator import Orchestrator
from provision.plan import ProvisioningPlan
from provision.record import summarize
from provision.transactor import ApeTransactor

VERIFY = False
PLAN_FILEPATH = PLANS_DIR / ZKSYNC / "ston.yml"


def main():
    """
    This script deploys the AssetFactory and Treasury implementations behind
    their upgradeable proxies on zkSync and initializes both through the proxies.

    TOKEN_ADDRESS must be set in the plan before running:
    ape run zksync deploy_ston --network zksync:sepolia
    """

    check_plugins(verify=VERIFY)
    plan = ProvisioningPlan.from_yaml(PLAN_FILEPATH)
    check_chain_id(plan.chain_id)

    transactor = ApeTransactor(
        signer_alias=plan.config.signer,
        verify=VERIFY,
        required_confirmations=plan.confirmation.required_confirmations,
    )
    record = Orchestrator.from_plan(plan, transactor).run()
    transactor.publish(summarize(record))
