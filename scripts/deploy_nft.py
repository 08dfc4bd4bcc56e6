#!/usr/bin/python3

from deployment.constants import NFT_TAG
from deployment.params import Deployer
from deployment.tasks import TASKS, run_deployment

VERIFY = False


def main():
    """
    Deploys NFT behind a TransparentUpgradeableProxy, initializes it with
    the OWNER and MINTER constants and transfers ownership to OWNER.

    ape run deploy_nft --network ethereum:local:test
    """
    task = TASKS[NFT_TAG]
    deployer = Deployer.from_yaml(filepath=task.params_filepath, verify=VERIFY)
    return run_deployment(task, deployer)
