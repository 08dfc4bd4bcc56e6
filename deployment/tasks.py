"""
Tagged deployment tasks.

Each task deploys one upgradeable contract behind a transparent proxy,
initializes it with its owner and minter, and hands ownership over to
the configured owner.
"""

import typing
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional

from ape.api import AccountAPI
from ape.cli.choices import select_account
from ape.contracts import ContractInstance

from deployment.constants import (
    CONSTRUCTOR_PARAMS_DIR,
    ERC721_CONTRACT,
    ERC721_TAG,
    NFT_CONTRACT,
    NFT_TAG,
)
from deployment.params import Deployer
from deployment.utils import get_contract_container


class DeploymentTask(NamedTuple):
    tag: str
    contract_name: str
    params_filepath: Path


TASKS = {
    ERC721_TAG: DeploymentTask(
        tag=ERC721_TAG,
        contract_name=ERC721_CONTRACT,
        params_filepath=CONSTRUCTOR_PARAMS_DIR / "erc721.yml",
    ),
    NFT_TAG: DeploymentTask(
        tag=NFT_TAG,
        contract_name=NFT_CONTRACT,
        params_filepath=CONSTRUCTOR_PARAMS_DIR / "nft.yml",
    ),
}


def get_tasks(tags: Iterable[str]) -> List[DeploymentTask]:
    """Returns the tasks selected by tags, in the order given and without duplicates."""
    tasks = list()
    for tag in tags:
        try:
            task = TASKS[tag]
        except KeyError:
            raise ValueError(f"No deployment task tagged '{tag}'.")
        if task not in tasks:
            tasks.append(task)
    return tasks


def run_deployment(task: DeploymentTask, deployer: Deployer) -> ContractInstance:
    """
    Deploys the task's contract behind a proxy (running its initializer),
    records it in the registry, then transfers ownership of the proxied
    contract to the configured owner.

    Nothing is caught here: a failed deployment, a reverted initializer or a
    reverted ownership transfer propagates to the caller. A deployment is
    recorded before its ownership transfer, so a rerun after a failed transfer
    reuses it and only retries the transfer.
    """
    request = deployer.request(task.contract_name)
    deployer.log(
        f"\n[{task.tag}] {request.contract_name} via {request.proxy_contract}: "
        f"{request.initializer_method_name}({', '.join(map(str, request.initializer_args))}), "
        f"owner -> {request.new_owner_address}"
    )

    container = get_contract_container(task.contract_name)
    instance = deployer.deploy(container)
    deployer.finalize(deployments=[instance])

    if request.new_owner_address:
        deployer.transfer_ownership(instance, request.new_owner_address)

    return instance


def run_tasks(
    tags: Iterable[str],
    account: Optional[AccountAPI] = None,
    autosign: bool = False,
    verify: bool = False,
    constants: Optional[typing.Dict[str, str]] = None,
) -> Dict[str, ContractInstance]:
    """Runs the tagged tasks one after another with a single deployer account."""
    tasks = get_tasks(tags)
    account = account or select_account()

    deployments = dict()
    for task in tasks:
        deployer = Deployer.from_yaml(
            filepath=task.params_filepath,
            constants=constants,
            verify=verify,
            account=account,
            autosign=autosign,
        )
        deployments[task.tag] = run_deployment(task, deployer)
    return deployments
