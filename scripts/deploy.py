#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from ignition.ape_client import ApeArtifactSource, ApeChainClient
from ignition.confirm import _continue
from ignition.engine import ExecutionEngine
from ignition.journal import FileJournal
from ignition.options import (
    autosign_option,
    config_option,
    module_option,
    parameter_option,
    parameters_file_option,
    verify_option,
)
from ignition.params import ParameterProvider
from ignition.registry import registry_from_deployment
from ignition.utils import _load_yaml, get_artifact_filepath, validate_config


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@module_option
@config_option
@parameters_file_option
@parameter_option
@autosign_option
@verify_option
def cli(
    network,
    account,
    module,
    config_filepath,
    parameters_filepath,
    parameter_assignments,
    autosign,
    verify,
):
    """Deploy (or resume deploying) a module on the connected network."""
    client = ApeChainClient(account=account, autosign=autosign, verify=verify)
    config = _load_yaml(config_filepath)
    deployment_dir = validate_config(config=config, chain_id=client.chain_id)

    if parameters_filepath:
        parameters = ParameterProvider.from_file(parameters_filepath)
    else:
        parameters = ParameterProvider.from_config(config)
    parameters.update(parameter_assignments)

    client.print_info()
    print(f"Module: {module.name}", f"Deployment: {deployment_dir}", sep="\n")

    artifacts = ApeArtifactSource()
    journal = FileJournal.from_directory(deployment_dir)
    engine = ExecutionEngine(
        client=client,
        artifacts=artifacts,
        journal=journal,
        parameters=parameters,
    )
    print(engine.plan(module).render(journal=journal))
    if not autosign:
        _continue()

    result = engine.run(module)

    print(f"\n{module.name} outputs:")
    for name, value in result.outputs.items():
        print(f"\t{name}={value}")

    registry_filepath = get_artifact_filepath(config)
    if registry_filepath:
        registry_from_deployment(
            module=module,
            result=result,
            artifacts=artifacts,
            chain_id=client.chain_id,
            output_filepath=registry_filepath,
        )


if __name__ == "__main__":
    cli()
