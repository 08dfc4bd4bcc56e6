import pytest
from ape.utils import ZERO_ADDRESS

from deployment.constants import CONSTRUCTOR_PARAMS_DIR
from deployment.params import (
    ConstructorParameters,
    DeploymentSettings,
    ProxyParameters,
    _select_method_abi,
)
from deployment.registry import RegistryEntry, write_registry
from deployment.utils import _load_yaml
from tests.conftest import (
    CHAIN_ID,
    ENCODED_ARGS,
    IMPLEMENTATION,
    INITIALIZE_ABI,
    INITIALIZE_SELECTOR,
    MINTER,
    OWNER,
    make_config,
)

NFT_PROXY = "0x4444444444444444444444444444444444444444"


@pytest.mark.parametrize("filename,contract_name", [("erc721.yml", "ERC721"), ("nft.yml", "NFT")])
def test_shipped_params_files(filename, contract_name):
    config = _load_yaml(CONSTRUCTOR_PARAMS_DIR / filename)

    (contract,) = config["contracts"]
    proxy = contract[contract_name]["proxy"]
    assert proxy["proxy_contract"] == "OpenZeppelinTransparentProxy"
    assert proxy["initializer"] == {"method": "initialize", "args": ["$OWNER", "$MINTER"]}
    assert contract[contract_name]["owner"] == "$OWNER"
    assert config["artifacts"]["filename"] == "deployments.json"
    assert config["constants"]["OWNER"] == config["constants"]["MINTER"]


def test_shipped_params_files_are_independent():
    erc721 = _load_yaml(CONSTRUCTOR_PARAMS_DIR / "erc721.yml")
    nft = _load_yaml(CONSTRUCTOR_PARAMS_DIR / "nft.yml")
    assert erc721["deployment"]["name"] != nft["deployment"]["name"]
    assert erc721["constants"] == nft["constants"]


def test_constants_are_checksummed(deployer_factory):
    lowercase = {"OWNER": OWNER.lower(), "MINTER": MINTER.lower()}
    deployer = deployer_factory(config=make_config(constants=lowercase))
    request = deployer.request("ERC721")
    assert request.initializer_args == [OWNER, MINTER]
    assert request.new_owner_address == OWNER


def test_missing_constant(ape_env):
    config = make_config(constants={"OWNER": OWNER})
    with pytest.raises(ValueError, match="Constant 'MINTER' not found"):
        ProxyParameters.from_config(config)


def test_unresolvable_variable(ape_env):
    proxy = {"initializer": {"method": "initialize", "args": ["$OWNER", "$minter"]}}
    with pytest.raises(ValueError, match="Unresolvable variable"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_malformed_address_constant(ape_env):
    config = make_config(constants={"OWNER": OWNER, "MINTER": "0x007E483C"})
    with pytest.raises(ValueError, match="Could not find ABI for 'initialize'"):
        ProxyParameters.from_config(config)


def test_initializer_arity_mismatch(ape_env):
    proxy = {"initializer": {"method": "initialize", "args": ["$OWNER"]}}
    with pytest.raises(ValueError, match="with 1 arg"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_unknown_initializer_method(ape_env):
    proxy = {"initializer": {"method": "setup", "args": ["$OWNER", "$MINTER"]}}
    with pytest.raises(ProxyParameters.Invalid, match="no initializer method named 'setup'"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_default_initializer_method(ape_env):
    proxy = {"initializer": {"args": ["$OWNER", "$MINTER"]}}
    proxy_parameters = ProxyParameters.from_config(make_config(proxy=proxy))
    info = proxy_parameters.get_info("ERC721")
    assert info.initializer.method_name == "initialize"
    assert info.proxy_contract == "OpenZeppelinTransparentProxy"


def test_unsupported_proxy_contract(ape_env):
    proxy = {"proxy_contract": "UUPS"}
    with pytest.raises(ProxyParameters.Invalid, match="Unsupported proxy contract 'UUPS'"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_logic_cannot_be_specified(ape_env):
    proxy = {"constructor": {"_logic": "$OWNER"}}
    with pytest.raises(ProxyParameters.Invalid, match="'_logic' parameter cannot be specified"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_initializer_and_data_are_exclusive(ape_env):
    proxy = {
        "constructor": {"_data": "0x"},
        "initializer": {"method": "initialize", "args": ["$OWNER", "$MINTER"]},
    }
    with pytest.raises(ProxyParameters.Invalid, match="not both"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_proxy_without_initializer(ape_env):
    proxy_parameters = ProxyParameters.from_config(make_config(proxy={}))
    assert proxy_parameters.contract_needs_proxy("ERC721")
    assert proxy_parameters.get_info("ERC721").initializer is None
    assert not proxy_parameters.contract_needs_proxy("NFT")
    with pytest.raises(ValueError, match="Unexpected contract to proxy"):
        proxy_parameters.get_info("NFT")


def test_constructor_parameter_count_mismatch(ape_env):
    config = make_config()
    config["contracts"][0]["ERC721"]["constructor"] = {"name": "Basecamp"}
    with pytest.raises(ConstructorParameters.Invalid, match="length mismatch"):
        ConstructorParameters.from_config(config)


def test_malformed_contracts_entry(ape_env):
    config = make_config()
    config["contracts"] = [{"ERC721": {}, "NFT": {}}]
    with pytest.raises(ValueError, match="Malformed deployment parameters YAML"):
        ConstructorParameters.from_config(config)


def test_settings_defaults():
    settings = DeploymentSettings.from_config({})
    assert settings.log is True
    assert settings.auto_mine is True


def test_settings_unknown_key():
    with pytest.raises(ValueError, match="Unknown deployment settings: gas"):
        DeploymentSettings.from_config({"settings": {"gas": 1}})


def test_invalid_owner(deployer_factory):
    with pytest.raises(ValueError, match="Invalid owner address"):
        deployer_factory(config=make_config(owner="0x1234"))


def test_select_method_abi_by_types():
    with pytest.raises(ValueError, match="No method abis"):
        _select_method_abi(method_abis=[], args=[])
    assert _select_method_abi([INITIALIZE_ABI], [OWNER, MINTER]) is INITIALIZE_ABI
    with pytest.raises(ValueError):
        _select_method_abi([INITIALIZE_ABI], [OWNER, 42])


@pytest.mark.parametrize("value", ["no", 0, None])
def test_settings_must_be_booleans(value):
    with pytest.raises(ValueError, match="Deployment setting 'log' must be true or false"):
        DeploymentSettings.from_config({"settings": {"log": value}})


def test_settings_from_config():
    settings = DeploymentSettings.from_config({"settings": {"log": False, "auto_mine": False}})
    assert settings == DeploymentSettings(log=False, auto_mine=False)


def test_encoded_call_data_as_proxy_data(ape_env, ecosystem):
    proxy = {"constructor": {"_data": "$encode:initialize,$OWNER,$MINTER"}}
    proxy_parameters = ProxyParameters.from_config(make_config(proxy=proxy))

    info = proxy_parameters.get_info("ERC721")
    assert info.initializer is None
    resolved = proxy_parameters.resolve("ERC721", IMPLEMENTATION)
    assert resolved["_data"] == INITIALIZE_SELECTOR + ENCODED_ARGS
    ecosystem.encode_calldata.assert_called_once_with(INITIALIZE_ABI, OWNER, MINTER)


def test_encoded_call_data_is_validated(ape_env):
    proxy = {"constructor": {"_data": "$encode:initialize,$OWNER"}}
    with pytest.raises(ValueError, match="with 1 arg"):
        ProxyParameters.from_config(make_config(proxy=proxy))

    proxy = {"constructor": {"_data": "$encode:setup,$OWNER,$MINTER"}}
    with pytest.raises(ProxyParameters.Invalid, match="no initializer method named 'setup'"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_contract_name_resolves_to_registered_address(deployer_factory, registry_filepath):
    proxy = {"initializer": {"method": "initialize", "args": ["$OWNER", "$NFT"]}}
    deployer = deployer_factory(config=make_config(proxy=proxy))

    # not deployed yet
    assert deployer.request("ERC721").initializer_args == [OWNER, ZERO_ADDRESS]

    nft = RegistryEntry(
        chain_id=CHAIN_ID,
        name="NFT",
        address=NFT_PROXY,
        abi=[],
        tx_hash="0xabc",
        block_number=1,
        deployer=OWNER,
    )
    write_registry(entries=[nft], filepath=registry_filepath)
    assert deployer.request("ERC721").initializer_args == [OWNER, NFT_PROXY]


def test_unknown_contract_name_is_looked_up_as_constant(ape_env):
    proxy = {"initializer": {"method": "initialize", "args": ["$OWNER", "$ERC1155"]}}
    with pytest.raises(ValueError, match="Constant 'ERC1155' not found"):
        ProxyParameters.from_config(make_config(proxy=proxy))


def test_unregistered_contract_cannot_be_owner(deployer_factory):
    with pytest.raises(ValueError, match="Invalid owner address"):
        deployer_factory(config=make_config(owner="$NFT"))
