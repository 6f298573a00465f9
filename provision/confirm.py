from collections import OrderedDict

from ape.utils import ZERO_ADDRESS

from provision.exceptions import DeploymentAborted


def _confirm_step(step_label: str) -> None:
    """Asks the user to confirm a single step of the plan."""
    answer = input(f"{step_label[0].upper()}{step_label[1:]} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        raise DeploymentAborted(f"Operator declined to {step_label}")


def _continue() -> None:
    """Asks the user to continue."""
    answer = input("Continue Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        raise DeploymentAborted("Operator declined to start the deployment")


def _confirm_zero_address() -> None:
    answer = input("Zero Address detected for deployment parameter; Continue? Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        raise DeploymentAborted("Operator declined a zero address parameter")


def _confirm_resolution(resolved_params: OrderedDict, step_label: str) -> None:
    """Asks the user to confirm the resolved parameters of a single step."""
    if len(resolved_params) == 0:
        print(f"\n(i) No parameters to {step_label}")
        _confirm_step(step_label)
        return

    print(f"\nParameters to {step_label}")
    contains_zero_address = False
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
        if not contains_zero_address:
            contains_zero_address = resolved_value == ZERO_ADDRESS
    _confirm_step(step_label)
    if contains_zero_address:
        _confirm_zero_address()
