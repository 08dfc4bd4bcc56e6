from pathlib import Path

from ape import project

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Tags
#

ERC721_TAG = "ERC721"
NFT_TAG = "NFT"

SUPPORTED_TAGS = [ERC721_TAG, NFT_TAG]

#
# Contracts
#

ERC721_CONTRACT = "ERC721"
NFT_CONTRACT = "NFT"

# contracts with their own deployment task
DEPLOYABLE_CONTRACTS = [ERC721_CONTRACT, NFT_CONTRACT]

OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

# EIP1967 Admin slot - https://eips.ethereum.org/EIPS/eip-1967#admin-address
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

# proxy kind -> OpenZeppelin contract name
PROXY_CONTRACTS = {
    "OpenZeppelinTransparentProxy": "TransparentUpgradeableProxy",
}
DEFAULT_PROXY_CONTRACT = "OpenZeppelinTransparentProxy"

DEFAULT_INITIALIZER = "initialize"


def get_oz_dependency():
    return project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]
