from ignition.module import ModuleBuilder, build_module
from modules.contract_deployment import ContractDeployment


def _contract_upgrade(m: ModuleBuilder):
    # journal keys are shared with ContractDeployment; a deployed proxy is reused
    deployed_contract = m.use_module(ContractDeployment)["deployedContract"]

    new_implementation = m.contract("ContractV2", id="ContractV2Implementation")

    # caller must hold UPGRADER_ROLE
    m.call(deployed_contract, "upgradeTo", [new_implementation])

    upgraded_contract = m.contract_at("ContractV2", deployed_contract, id="ContractV2Instance")

    return {
        "upgradedContract": upgraded_contract,
        "newImplementation": new_implementation,
    }


ContractUpgrade = build_module("ContractUpgrade", _contract_upgrade)
