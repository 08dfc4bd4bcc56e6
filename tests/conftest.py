from unittest.mock import MagicMock, Mock

import pytest
from eth_utils import to_checksum_address
from ethpm_types.abi import ABIType, MethodABI

from deployment import params

# Common constants
CHAIN_ID = 1337
OWNER = to_checksum_address("0x007E483Cf6Df009Db5Ec571270b454764d954d95")
MINTER = to_checksum_address("0x6b175474e89094c44da98b954eedeac495271d0f")
DEPLOYER = "0x1111111111111111111111111111111111111111"
IMPLEMENTATION = "0x2222222222222222222222222222222222222222"
PROXY = "0x3333333333333333333333333333333333333333"

INITIALIZE_SELECTOR = bytes.fromhex("485cc955")
ENCODED_ARGS = b"\x01" * 64

INITIALIZE_ABI = MethodABI(
    name="initialize",
    inputs=[ABIType(name="owner", type="address"), ABIType(name="minter", type="address")],
)
TRANSFER_OWNERSHIP_ABI = MethodABI(
    name="transferOwnership", inputs=[ABIType(name="newOwner", type="address")]
)
OWNER_ABI = MethodABI(name="owner", stateMutability="view", outputs=[ABIType(type="address")])


# Utility functions
def make_config(contract_name="ERC721", proxy=None, owner="$OWNER", constants=None):
    if proxy is None:
        proxy = {
            "proxy_contract": "OpenZeppelinTransparentProxy",
            "initializer": {"method": "initialize", "args": ["$OWNER", "$MINTER"]},
        }
    contract_data = {"proxy": proxy}
    if owner is not None:
        contract_data["owner"] = owner
    return {
        "deployment": {"name": contract_name.lower(), "chain_id": CHAIN_ID},
        "artifacts": {"filename": "deployments.json"},
        "constants": constants if constants is not None else {"OWNER": OWNER, "MINTER": MINTER},
        "settings": {"log": True, "auto_mine": True},
        "contracts": [{contract_name: contract_data}],
    }


def make_container(name, methods=None, constructor_inputs=None):
    container = Mock(name=f"{name}Container")
    container.contract_type.name = name
    container.contract_type.methods = methods if methods is not None else []
    container.constructor.abi.inputs = constructor_inputs or []
    return container


def make_instance(name, address, owner=DEPLOYER):
    instance = MagicMock(name=name)
    instance.address = address
    instance.contract_type.name = name
    instance.owner.return_value = owner
    instance.transferOwnership.abis = [TRANSFER_OWNERSHIP_ABI]
    instance.transferOwnership.contract = instance
    return instance


def make_deployed_instance(name, address, owner=DEPLOYER, block_number=7):
    instance = make_instance(name, address, owner=owner)
    instance.contract_type.abi = []
    instance.receipt.chain_id = CHAIN_ID
    instance.receipt.txn_hash = "0xfeed"
    instance.receipt.block_number = block_number
    instance.receipt.transaction.sender = DEPLOYER
    return instance


# Fixtures
@pytest.fixture
def account():
    deployer_account = Mock(name="deployer")
    deployer_account.address = DEPLOYER
    return deployer_account


@pytest.fixture
def containers():
    return {
        "ERC721": make_container(
            "ERC721", methods=[INITIALIZE_ABI, TRANSFER_OWNERSHIP_ABI, OWNER_ABI]
        ),
        "NFT": make_container("NFT", methods=[INITIALIZE_ABI, TRANSFER_OWNERSHIP_ABI, OWNER_ABI]),
    }


@pytest.fixture
def proxy_container():
    return make_container("TransparentUpgradeableProxy")


@pytest.fixture
def ecosystem():
    eco = Mock(name="ecosystem")
    eco.name = "ethereum"
    eco.get_method_selector.return_value = INITIALIZE_SELECTOR
    eco.encode_calldata.return_value = ENCODED_ARGS
    return eco


@pytest.fixture
def registry_filepath(tmp_path):
    return tmp_path / "artifacts" / "deployments.json"


@pytest.fixture
def ape_env(monkeypatch, containers, proxy_container, ecosystem, registry_filepath):
    """Stands in for the ape project, provider and plugins used by the deployer."""
    fake_networks = Mock(name="networks")
    fake_networks.provider.network.chain_id = CHAIN_ID
    fake_networks.provider.network.name = "local"
    fake_networks.provider.network.ecosystem = ecosystem

    # registered addresses have code unless a test says otherwise
    fake_chain = Mock(name="chain")
    fake_chain.provider.get_code.return_value = b"\x60\x80\x60\x40"

    oz_dependency = Mock(name="openzeppelin")
    oz_dependency.TransparentUpgradeableProxy = proxy_container

    monkeypatch.setattr(params, "networks", fake_networks)
    monkeypatch.setattr(params, "chain", fake_chain)
    monkeypatch.setattr(params, "get_contract_container", lambda name: containers[name])
    monkeypatch.setattr(params, "get_oz_dependency", lambda: oz_dependency)
    monkeypatch.setattr(params, "check_plugins", lambda: None)
    monkeypatch.setattr(params, "enable_auto_mine", lambda: None)
    monkeypatch.setattr(params, "validate_config", lambda config: registry_filepath)
    monkeypatch.setattr(params, "get_artifact_filepath", lambda config: registry_filepath)
    return fake_networks


@pytest.fixture
def deployer_factory(ape_env, account):
    def factory(config=None, autosign=True, verify=False):
        return params.Deployer(
            config=config or make_config(),
            path="erc721.yml",
            verify=verify,
            account=account,
            autosign=autosign,
        )

    return factory
