#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.constants import SUPPORTED_TAGS
from deployment.options import autosign_option, verify_option
from deployment.params import Deployer
from deployment.registry import get_registry_entry
from deployment.tasks import TASKS
from deployment.utils import get_contract_container


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@click.option(
    "--tag",
    "-t",
    help="Tag of the deployment whose proxy is upgraded",
    type=click.Choice(SUPPORTED_TAGS),
    required=True,
)
@autosign_option
@verify_option
def cli(network, account, tag, autosign, verify):
    """Deploy a new implementation and point the registered proxy at it."""
    task = TASKS[tag]
    deployer = Deployer.from_yaml(
        filepath=task.params_filepath, verify=verify, account=account, autosign=autosign
    )
    chain_id = networks.provider.network.chain_id
    entry = get_registry_entry(
        filepath=deployer.registry_filepath,
        chain_id=chain_id,
        name=task.contract_name,
    )
    if entry is None:
        raise click.ClickException(
            f"No {task.contract_name} deployment registered for chain {chain_id} "
            f"in {deployer.registry_filepath}"
        )

    container = get_contract_container(task.contract_name)
    upgraded = deployer.upgrade(container, entry.address)
    click.secho(f"{task.contract_name} at {upgraded.address} upgraded.", fg="green")


if __name__ == "__main__":
    cli()
