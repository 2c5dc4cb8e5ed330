#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from ignition.ape_client import ApeArtifactSource
from ignition.client import JSONArtifactSource
from ignition.engine import plan_deployment
from ignition.journal import FileJournal
from ignition.options import (
    artifacts_dir_option,
    config_option,
    module_option,
    parameter_option,
    parameters_file_option,
)
from ignition.params import ParameterProvider
from ignition.utils import _load_yaml, validate_config


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@module_option
@config_option
@parameters_file_option
@parameter_option
@artifacts_dir_option
def cli(
    network,
    module,
    config_filepath,
    parameters_filepath,
    parameter_assignments,
    artifacts_dir,
):
    """Print the execution plan of a module; nothing is submitted."""
    config = _load_yaml(config_filepath)
    deployment_dir = validate_config(config=config, chain_id=networks.provider.network.chain_id)
    journal = FileJournal.from_directory(deployment_dir)

    if parameters_filepath:
        parameters = ParameterProvider.from_file(parameters_filepath)
    else:
        parameters = ParameterProvider.from_config(config)
    parameters.update(parameter_assignments)

    if artifacts_dir:
        artifacts = JSONArtifactSource(artifacts_dir)
    else:
        artifacts = ApeArtifactSource()

    plan = plan_deployment(
        module=module, artifacts=artifacts, journal=journal, parameters=parameters
    )
    print(plan.render(journal=journal))


if __name__ == "__main__":
    cli()
