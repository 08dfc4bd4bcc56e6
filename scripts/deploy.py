#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.options import (
    autosign_option,
    minter_option,
    owner_option,
    tag_option,
    verify_option,
)
from deployment.tasks import run_tasks


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@tag_option
@owner_option
@minter_option
@autosign_option
@verify_option
def cli(network, account, tags, owner, minter, autosign, verify):
    """Run the tagged proxied deployments (e.g. --tag ERC721 --tag NFT)."""
    constants = dict()
    if owner:
        constants["OWNER"] = owner
    if minter:
        constants["MINTER"] = minter

    deployments = run_tasks(
        tags=tags,
        account=account,
        autosign=autosign,
        verify=verify,
        constants=constants,
    )
    for tag, instance in deployments.items():
        click.secho(f"{tag}: {instance.contract_type.name} at {instance.address}", fg="green")


if __name__ == "__main__":
    cli()
