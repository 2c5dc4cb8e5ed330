from typing import Any, Dict

from ape.utils import ZERO_ADDRESS


def _confirm(question: str) -> None:
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    _confirm("Continue")


def _confirm_zero_address() -> None:
    _confirm("Zero Address detected for deployment parameter; Continue?")


def _confirm_resolution(named_args: Dict[str, Any], description: str) -> None:
    """Asks the user to confirm the resolved arguments of a single action."""
    if len(named_args) == 0:
        print(f"\n(i) No arguments for {description}")
        _confirm(description)
        return

    print(f"\nArguments for {description}")
    contains_zero_address = False
    for name, resolved_value in named_args.items():
        print(f"\t{name}={resolved_value}")
        if not contains_zero_address:
            contains_zero_address = resolved_value == ZERO_ADDRESS
    _confirm(description)
    if contains_zero_address:
        _confirm_zero_address()
