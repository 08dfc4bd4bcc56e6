import typing
from abc import ABC, abstractmethod
from collections import OrderedDict, namedtuple
from pathlib import Path
from typing import Any, List, Optional

from ape import chain, networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.utils import EMPTY_BYTES32, ZERO_ADDRESS
from ape_accounts import KeyfileAccount
from eth_typing import ChecksumAddress
from eth_utils import is_hex_address, to_checksum_address
from ethpm_types import MethodABI
from web3.auto import w3

from deployment.confirm import _confirm_resolution, _confirm_reuse, _continue
from deployment.constants import (
    DEFAULT_INITIALIZER,
    DEFAULT_PROXY_CONTRACT,
    DEPLOYABLE_CONTRACTS,
    EIP1967_ADMIN_SLOT,
    PROXY_CONTRACTS,
    get_oz_dependency,
)
from deployment.registry import get_registry_entry, registry_from_ape_deployments
from deployment.utils import (
    _load_yaml,
    check_plugins,
    enable_auto_mine,
    get_artifact_filepath,
    get_contract_container,
    validate_config,
    verify_contracts,
)

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_PROXY_PARAMETER_KEY = "proxy"
CONTRACT_OWNER_PARAMETER_KEY = "owner"


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
        registry_filepath: Optional[Path] = None,
    ):
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()
        self.registry_filepath = registry_filepath


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is the special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self) -> Any:
        deployer_account = Deployer.get_account()
        if deployer_account is None:
            return ZERO_ADDRESS
        return deployer_account.address


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            value = context.constants[constant_name]
        except KeyError:
            raise ValueError(f"Constant '{constant_name}' not found in deployment file.")
        if isinstance(value, str) and is_hex_address(value):
            value = to_checksum_address(value)
        self.constant_value = value

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self) -> Any:
        return self.constant_value


class InitializerCall(Variable):
    """
    Call data for the initializer that the proxy runs in its constructor,
    e.g. ``initialize(owner, minter)``.
    """

    def __init__(self, method_name: str, method_args: List[Any], context: VariableContext):
        self.contract_name = context.contract_name
        self.method_name = method_name
        self.method_args = [_process_raw_value(arg, context) for arg in method_args]
        self.method_abi = self._select_abi()

    def _select_abi(self) -> MethodABI:
        contract_container = get_contract_container(self.contract_name)
        method_abis = [
            abi for abi in contract_container.contract_type.methods if abi.name == self.method_name
        ]
        if not method_abis:
            raise ProxyParameters.Invalid(
                f"{self.contract_name} has no initializer method named '{self.method_name}'."
            )
        return _select_method_abi(method_abis=method_abis, args=self.resolve_args())

    def resolve_args(self) -> List[Any]:
        return [_resolve_param(arg) for arg in self.method_args]

    def resolve(self) -> bytes:
        ecosystem = networks.provider.network.ecosystem
        selector = ecosystem.get_method_selector(self.method_abi)
        arguments = ecosystem.encode_calldata(self.method_abi, *self.resolve_args())
        return bytes(selector) + bytes(arguments)


class Encode(InitializerCall):
    """Call data written inline, e.g. ``$encode:initialize,$OWNER,$MINTER``."""

    ENCODE_PREFIX = "encode:"

    def __init__(self, variable: str, context: VariableContext):
        variable_elements = variable[len(self.ENCODE_PREFIX) :].split(",")
        super().__init__(
            method_name=variable_elements[0],
            method_args=variable_elements[1:],
            context=context,
        )

    @classmethod
    def is_encode(cls, value: str) -> bool:
        """Returns True if the variable is a variable that needs encoding to bytes"""
        return value.startswith(cls.ENCODE_PREFIX)


class ContractName(Variable):
    """Address of another contract, as recorded in the registry for the connected chain."""

    def __init__(self, contract_name: str, context: VariableContext):
        if not self.is_contract_name(contract_name, context):
            raise ValueError(f"Contract name {contract_name} not found")
        self.contract_name = contract_name
        self.registry_filepath = context.registry_filepath

    @classmethod
    def is_contract_name(cls, value: str, context: VariableContext) -> bool:
        return value in context.contract_names

    def resolve(self) -> Any:
        entry = None
        if self.registry_filepath is not None:
            entry = get_registry_entry(
                filepath=self.registry_filepath,
                chain_id=networks.provider.network.chain_id,
                name=self.contract_name,
            )
        if entry is None:
            # not deployed yet - in eager validation check
            return ZERO_ADDRESS
        return entry.address


def _resolve_param(value: Any) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v) for v in value]

    if isinstance(value, Variable):
        return value.resolve()

    return value  # literally a value


def _resolve_params(parameters: OrderedDict) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value)

    return resolved_parameters


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Encode.is_encode(variable):
        return Encode(variable, context)
    elif ContractName.is_contract_name(variable, context):
        return ContractName(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    raise ValueError(
        f"Unresolvable variable '${variable}' for {context.contract_name}; "
        "expected $deployer, $encode:<method>,<args>, a contract name or an upper-case constant."
    )


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: typing.Dict, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _iter_contracts(config: typing.Dict) -> typing.Iterator[typing.Tuple[str, typing.Dict]]:
    """Yields (contract name, contract data) for each contract entry of a config."""
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            yield contract_info, dict()
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_name = list(contract_info.keys())[0]
            yield contract_name, contract_info[contract_name] or dict()
        else:
            raise ValueError("Malformed deployment parameters YAML.")


def _get_contract_names(config: typing.Dict) -> List[str]:
    """Contracts with their own deployment task, plus any others listed in the config."""
    contract_names = list(DEPLOYABLE_CONTRACTS)
    for contract_name, _ in _iter_contracts(config):
        if contract_name not in contract_names:
            contract_names.append(contract_name)
    return contract_names


def _variable_context(config: typing.Dict, contract_name: str) -> VariableContext:
    return VariableContext(
        contract_names=_get_contract_names(config),
        contract_name=contract_name,
        constants=config.get("constants"),
        registry_filepath=get_artifact_filepath(config),
    )


def _select_method_abi(method_abis: List[MethodABI], args: typing.Sequence[Any]) -> MethodABI:
    """Returns the first method ABI whose inputs accept the given arguments."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    for abi in method_abis:
        if len(abi.inputs) != len(args):
            continue
        if all(w3.is_encodable(abi_input.type, arg) for arg, abi_input in zip(args, abi.inputs)):
            return abi
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    abi = _select_method_abi(method_abis=method_abis, args=args)
    return {abi_input.name: arg for arg, abi_input in zip(args, abi.inputs)}


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if abi_input.name != name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )
        if not w3.is_encodable(abi_input.type, value):
            raise ConstructorParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


class ConstructorParameters:
    """Represents the constructor parameters for a set of contracts."""

    class Invalid(ValueError):
        """Raised when the constructor parameters are invalid"""

    def __init__(self, parameters: OrderedDict):
        self.parameters = parameters
        for contract_name, contract_parameters in parameters.items():
            _validate_constructor_abi_inputs(
                contract_name=contract_name,
                abi_inputs=get_contract_container(contract_name).constructor.abi.inputs,
                resolved_parameters=_resolve_params(contract_parameters),
            )

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ConstructorParameters":
        contracts_config = OrderedDict()
        for contract_name, contract_data in _iter_contracts(config):
            constructor_data = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
            if not isinstance(constructor_data, dict):
                raise ValueError(f"Malformed constructor parameter config for {contract_name}.")
            contracts_config[contract_name] = _process_raw_values(
                constructor_data, _variable_context(config, contract_name)
            )
        return cls(parameters=contracts_config)

    def resolve(self, contract_name: str) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        return _resolve_params(self.parameters[contract_name])


class ProxyParameters:
    """Represents the proxy parameters for contracts that are to be proxied"""

    PROXY_CONTRACT = "proxy_contract"
    INITIALIZER = "initializer"
    INITIALIZER_METHOD = "method"
    INITIALIZER_ARGS = "args"
    LOGIC_PARAMETER = "_logic"
    DATA_PARAMETER = "_data"

    class Invalid(ValueError):
        """Raised when the proxy parameters are invalid"""

    class ProxyInfo(typing.NamedTuple):
        proxy_contract: str
        constructor_params: OrderedDict
        initializer: Optional[InitializerCall]

    def __init__(self, contracts_proxy_info: OrderedDict):
        self.contracts_proxy_info = contracts_proxy_info

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ProxyParameters":
        contracts_proxy_info = OrderedDict()
        for contract_name, contract_data in _iter_contracts(config):
            if CONTRACT_PROXY_PARAMETER_KEY not in contract_data:
                continue
            context = _variable_context(config, contract_name)
            proxy_data = contract_data[CONTRACT_PROXY_PARAMETER_KEY] or dict()
            contracts_proxy_info[contract_name] = cls._generate_proxy_info(proxy_data, context)

        return cls(contracts_proxy_info=contracts_proxy_info)

    @classmethod
    def _generate_proxy_info(cls, proxy_data: typing.Dict, context: VariableContext) -> ProxyInfo:
        proxy_contract = proxy_data.get(cls.PROXY_CONTRACT, DEFAULT_PROXY_CONTRACT)
        if proxy_contract not in PROXY_CONTRACTS:
            raise cls.Invalid(
                f"Unsupported proxy contract '{proxy_contract}' for {context.contract_name}; "
                f"expected one of {', '.join(PROXY_CONTRACTS)}."
            )

        constructor_data = cls._default_proxy_parameters()
        proxy_constructor_params = proxy_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
        if cls.LOGIC_PARAMETER in proxy_constructor_params:
            raise cls.Invalid(
                f"'{cls.LOGIC_PARAMETER}' parameter cannot be specified: it is implicitly "
                "the contract being proxied"
            )
        constructor_data.update(proxy_constructor_params)

        initializer = None
        initializer_data = proxy_data.get(cls.INITIALIZER)
        if initializer_data is not None:
            if cls.DATA_PARAMETER in proxy_constructor_params:
                raise cls.Invalid(
                    f"Specify either an initializer or '{cls.DATA_PARAMETER}' "
                    f"for the {context.contract_name} proxy, not both."
                )
            initializer = InitializerCall(
                method_name=initializer_data.get(cls.INITIALIZER_METHOD, DEFAULT_INITIALIZER),
                method_args=initializer_data.get(cls.INITIALIZER_ARGS) or list(),
                context=context,
            )
            constructor_data[cls.DATA_PARAMETER] = initializer

        return cls.ProxyInfo(
            proxy_contract=proxy_contract,
            constructor_params=_process_raw_values(constructor_data, context),
            initializer=initializer,
        )

    @classmethod
    def _default_proxy_parameters(cls) -> OrderedDict:
        return OrderedDict({"initialOwner": "$deployer", cls.DATA_PARAMETER: b""})

    def contract_needs_proxy(self, contract_name: str) -> bool:
        return contract_name in self.contracts_proxy_info

    def get_info(self, contract_name: str) -> ProxyInfo:
        proxy_info = self.contracts_proxy_info.get(contract_name)
        if not proxy_info:
            raise ValueError(f"Unexpected contract to proxy: {contract_name}")
        return proxy_info

    def get_container(self, contract_name: str) -> ContractContainer:
        proxy_info = self.get_info(contract_name)
        return getattr(get_oz_dependency(), PROXY_CONTRACTS[proxy_info.proxy_contract])

    def resolve(self, contract_name: str, implementation_address: ChecksumAddress) -> OrderedDict:
        """Resolves the proxy constructor parameters for a single contract."""
        proxy_info = self.get_info(contract_name)
        resolved_params = OrderedDict({self.LOGIC_PARAMETER: implementation_address})
        resolved_params.update(_resolve_params(proxy_info.constructor_params))
        return resolved_params


class DeploymentSettings(typing.NamedTuple):
    log: bool = True
    auto_mine: bool = True

    @classmethod
    def from_config(cls, config: typing.Dict) -> "DeploymentSettings":
        settings = config.get("settings") or dict()
        unknown = set(settings) - set(cls._fields)
        if unknown:
            raise ValueError(f"Unknown deployment settings: {', '.join(sorted(unknown))}")
        for name, value in settings.items():
            if not isinstance(value, bool):
                raise ValueError(
                    f"Deployment setting '{name}' must be true or false, got {value!r}."
                )
        return cls(**settings)


class DeploymentRequest(typing.NamedTuple):
    """Everything needed to deploy, initialize and hand over a single proxied contract."""

    contract_name: str
    deployer_address: ChecksumAddress
    proxy_contract: Optional[str]
    initializer_method_name: Optional[str]
    initializer_args: List[Any]
    new_owner_address: Optional[ChecksumAddress]


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        if isinstance(self._account, KeyfileAccount):
            # test accounts always sign
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)


class Deployer(Transactor):
    """
    Represents an ape account plus deployment parameters for a set of
    contracts, plus validated/annotated execution.
    """

    __DEPLOYER_ACCOUNT: AccountAPI = None

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ):
        super().__init__(account, autosign)

        self.path = path
        self.config = config
        self.settings = DeploymentSettings.from_config(self.config)

        self.log("Checking plugins...")
        check_plugins()
        self.log("Validating parameters YAML...")
        self.registry_filepath = validate_config(config=self.config)

        # deployer must be known before variables are eagerly resolved
        self._set_account(self._account)

        self.log("Processing contract constructor parameters...")
        self.constructor_parameters = ConstructorParameters.from_config(self.config)
        self.log("Processing proxy parameters...")
        self.proxy_parameters = ProxyParameters.from_config(self.config)
        self.owners = self._get_owners(self.config)

        # Little trick to expose constants as attributes (e.g., deployer.constants.OWNER)
        constants = config.get("constants") or {}
        _Constants = namedtuple("_Constants", list(constants))
        self.constants = _Constants(**constants)

        self.verify = verify
        self._reused = set()
        self._replaced = set()
        self._print_deployment_info()

        if self.settings.auto_mine:
            enable_auto_mine()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(
        cls, filepath: Path, constants: Optional[typing.Dict] = None, *args, **kwargs
    ) -> "Deployer":
        config = _load_yaml(filepath)
        if constants:
            config["constants"] = {**(config.get("constants") or {}), **constants}
        return cls(config=config, path=filepath, *args, **kwargs)

    @classmethod
    def get_account(cls) -> AccountAPI:
        """Returns the deployer account."""
        return cls.__DEPLOYER_ACCOUNT

    @classmethod
    def _set_account(cls, deployer: AccountAPI) -> None:
        """Sets the deployer account."""
        cls.__DEPLOYER_ACCOUNT = deployer

    @staticmethod
    def _get_owners(config: typing.Dict) -> typing.Dict[str, ChecksumAddress]:
        """Resolves the address each contract's ownership is transferred to."""
        owners = dict()
        for contract_name, contract_data in _iter_contracts(config):
            owner = contract_data.get(CONTRACT_OWNER_PARAMETER_KEY)
            if owner is None:
                continue
            context = _variable_context(config, contract_name)
            owner = _resolve_param(_process_raw_value(owner, context))
            if not isinstance(owner, str) or not is_hex_address(owner) or owner == ZERO_ADDRESS:
                raise ValueError(f"Invalid owner address '{owner}' for {contract_name}.")
            owners[contract_name] = to_checksum_address(owner)
        return owners

    def log(self, message: str) -> None:
        """Prints deployment progress unless logging is turned off in the settings."""
        if self.settings.log:
            print(message)

    def _get_kwargs(self) -> typing.Dict[str, Any]:
        """Returns the deployment kwargs."""
        return {"publish": self.verify}

    def request(self, contract_name: str) -> DeploymentRequest:
        """Resolves the deployment request for a single contract."""
        proxy_contract, method_name, args = None, None, list()
        if self.proxy_parameters.contract_needs_proxy(contract_name):
            proxy_info = self.proxy_parameters.get_info(contract_name)
            proxy_contract = proxy_info.proxy_contract
            if proxy_info.initializer:
                method_name = proxy_info.initializer.method_name
                args = proxy_info.initializer.resolve_args()

        return DeploymentRequest(
            contract_name=contract_name,
            deployer_address=self.get_account().address,
            proxy_contract=proxy_contract,
            initializer_method_name=method_name,
            initializer_args=args,
            new_owner_address=self.owners.get(contract_name),
        )

    def deploy(self, container: ContractContainer) -> ContractInstance:
        contract_name = container.contract_type.name

        existing = self._get_existing_deployment(container)
        if existing is not None:
            return existing

        resolved_constructor_params = self.constructor_parameters.resolve(contract_name)
        instance = self._deploy_contract(container, resolved_constructor_params)

        if self.proxy_parameters.contract_needs_proxy(contract_name):
            instance = self._deploy_proxy(container, implementation=instance)

        return instance

    def _get_existing_deployment(
        self, container: ContractContainer
    ) -> typing.Optional[ContractInstance]:
        """Returns the registered deployment of a contract on the current chain, if any."""
        contract_name = container.contract_type.name
        entry = get_registry_entry(
            filepath=self.registry_filepath,
            chain_id=networks.provider.network.chain_id,
            name=contract_name,
        )
        if entry is None:
            return None

        if not chain.provider.get_code(entry.address):
            # e.g. a local chain restarted since the entry was written
            self.log(
                f"\n(i) No code at registered {contract_name} address {entry.address}; "
                "deploying a new one."
            )
            self._replaced.add(contract_name)
            return None

        if not self._autosign and not _confirm_reuse(contract_name, entry.address):
            self._replaced.add(contract_name)
            return None

        self.log(f"\nReusing {contract_name} at {entry.address} from {self.registry_filepath}.")
        self._reused.add(entry.address)
        return container.at(entry.address)

    def _deploy_contract(
        self, container: ContractContainer, resolved_params: OrderedDict
    ) -> ContractInstance:
        contract_name = container.contract_type.name
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)
        self.log(f"\nDeploying {contract_name}...")
        deployment_params = [container, *resolved_params.values()]
        instance = self.get_account().deploy(*deployment_params, **self._get_kwargs())
        self.log(f"Deployed {contract_name} at {instance.address}.")
        return instance

    def _deploy_proxy(
        self, container: ContractContainer, implementation: ContractInstance
    ) -> ContractInstance:
        target_contract_name = container.contract_type.name
        proxy_container = self.proxy_parameters.get_container(target_contract_name)
        self.log(
            f"\nDeploying {proxy_container.contract_type.name} "
            f"contract to proxy {target_contract_name}."
        )
        resolved_proxy_params = self.proxy_parameters.resolve(
            contract_name=target_contract_name, implementation_address=implementation.address
        )
        proxy_contract = self._deploy_contract(proxy_container, resolved_proxy_params)
        self.log(
            f"\nWrapping {target_contract_name} into {proxy_container.contract_type.name} "
            f"at {proxy_contract.address}."
        )
        return container.at(proxy_contract.address, txn_hash=proxy_contract.txn_hash)

    def transfer_ownership(
        self, instance: ContractInstance, new_owner: ChecksumAddress
    ) -> Optional[ReceiptAPI]:
        contract_name = instance.contract_type.name
        if instance.owner() == new_owner:
            self.log(f"\n(i) {contract_name} is already owned by {new_owner}.")
            return None
        return self.transact(instance.transferOwnership, new_owner)

    def upgrade(self, container: ContractContainer, proxy_address, data=b"") -> ContractInstance:
        contract_name = container.contract_type.name
        implementation = self._deploy_contract(
            container, self.constructor_parameters.resolve(contract_name)
        )
        return self.upgradeTo(implementation, proxy_address, data)

    def upgradeTo(
        self, implementation: ContractInstance, proxy_address, data=b""
    ) -> ContractInstance:
        admin_slot = chain.provider.get_storage_at(address=proxy_address, slot=EIP1967_ADMIN_SLOT)

        if admin_slot == EMPTY_BYTES32:
            raise ValueError(
                f"Admin slot for contract at {proxy_address} is empty. "
                "Are you sure this is an EIP1967-compatible proxy?"
            )

        admin_address = to_checksum_address(admin_slot[-20:])
        proxy_admin = get_oz_dependency().ProxyAdmin.at(admin_address)
        if proxy_admin.owner() != self.get_account().address:
            raise ValueError(
                f"ProxyAdmin at {admin_address} is not owned by {self.get_account().address}."
            )

        self.transact(proxy_admin.upgradeAndCall, proxy_address, implementation.address, data)

        container = get_contract_container(implementation.contract_type.name)
        return container.at(proxy_address)

    def finalize(self, deployments: List[ContractInstance]) -> None:
        """
        Publishes new deployments to the registry and optionally to block explorers.

        Registered entries that were found stale or declined for reuse are
        overwritten by the new deployment of the same contract.
        """
        deployments = [d for d in deployments if d.address not in self._reused]
        if not deployments:
            self.log("(i) No new deployments to register.")
            return
        registry_from_ape_deployments(
            deployments=deployments,
            output_filepath=self.registry_filepath,
            replace=self._replaced,
            silent=not self.settings.log,
        )
        if self.verify:
            verify_contracts(contracts=deployments)

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Config: {self.path}",
            f"Registry: {self.registry_filepath}",
            f"Verify: {self.verify}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )
