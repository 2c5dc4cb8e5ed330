from ignition.constants import ERC1967_PROXY
from ignition.module import ModuleBuilder, build_module


def _contract_deployment(m: ModuleBuilder):
    # Initialization roles; overridable with --parameter ContractDeployment.<name>=<address>
    default_admin = m.get_parameter("defaultAdmin", m.get_account(0))
    pauser = m.get_parameter("pauser", m.get_account(0))
    upgrader = m.get_parameter("upgrader", m.get_account(0))

    implementation = m.contract("Contract", id="ContractImplementation")

    initialize_data = m.encode_function_call(
        implementation, "initialize", [default_admin, pauser, upgrader]
    )

    # UUPS proxy pointing at the implementation; the constructor runs the initializer
    proxy = m.contract(ERC1967_PROXY, [implementation, initialize_data], id="ContractProxy")

    # Contract ABI at the proxy address
    deployed_contract = m.contract_at("Contract", proxy, id="ContractInstance")

    return {
        "deployedContract": deployed_contract,
        "proxy": proxy,
        "implementation": implementation,
    }


ContractDeployment = build_module("ContractDeployment", _contract_deployment)
