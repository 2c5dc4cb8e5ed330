import importlib
import json
from pathlib import Path
from typing import Dict, Optional

import yaml

from ignition.constants import (
    ARTIFACTS_DIR,
    DEPLOYMENT_ID_TEMPLATE,
    DEPLOYMENTS_DIR,
    LOCAL_CHAIN_IDS,
)


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def _load_config_file(filepath: Path) -> dict:
    """Loads a YAML or JSON file depending on its suffix."""
    filepath = Path(filepath)
    if filepath.suffix == ".json":
        data = _load_json(filepath)
    elif filepath.suffix in (".yml", ".yaml"):
        data = _load_yaml(filepath)
    else:
        raise ValueError(f"Unsupported config file format: {filepath}")
    return data or dict()


def is_local_chain(chain_id: int) -> bool:
    return chain_id in LOCAL_CHAIN_IDS


def get_artifact_filepath(config: Dict) -> Optional[Path]:
    """Returns the filepath of the registry artifact file, if one is configured."""
    artifact_config = config.get("artifacts") or {}
    filename = artifact_config.get("filename")
    if not filename:
        return None
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    return artifact_dir / filename


def get_deployment_id(config: Dict, chain_id: int) -> str:
    deployment = config.get("deployment") or {}
    return deployment.get("id") or DEPLOYMENT_ID_TEMPLATE.format(chain_id=chain_id)


def get_deployment_dir(config: Dict, chain_id: int) -> Path:
    """Returns the directory holding the journal for this deployment."""
    journal_config = config.get("journal") or {}
    journal_dir = Path(journal_config.get("dir", DEPLOYMENTS_DIR))
    return journal_dir / get_deployment_id(config, chain_id)


def validate_config(config: Dict, chain_id: int) -> Path:
    """
    Checks that the deployment config is well-formed and targets the connected chain.
    Returns the deployment directory that holds the journal.
    """
    print("Validating deployment config...")

    deployment = config.get("deployment")
    if not deployment:
        raise ValueError("deployment is not set in config file.")

    config_chain_id = deployment.get("chain_id")
    if not config_chain_id:
        raise ValueError("chain_id is not set in config file.")

    config_chain_id = int(config_chain_id)
    if config_chain_id != chain_id and not is_local_chain(chain_id):
        raise ValueError(
            f"chain_id in config file ({config_chain_id}) does not match "
            f"chain_id of current network ({chain_id})."
        )

    parameters = config.get("parameters")
    if parameters is not None and not isinstance(parameters, dict):
        raise ValueError("parameters must map module names to parameter values.")

    return get_deployment_dir(config, chain_id)


def load_module(reference: str):
    """
    Loads a deployment module from a 'package.module:Attribute' reference.
    Without an attribute the python module must expose exactly one deployment module.
    """
    from ignition.module import Module

    python_module_name, _, attribute = reference.partition(":")
    python_module = importlib.import_module(python_module_name)
    if attribute:
        try:
            module = getattr(python_module, attribute)
        except AttributeError:
            raise ValueError(f"'{python_module_name}' has no attribute '{attribute}'")
        if not isinstance(module, Module):
            raise ValueError(f"'{reference}' is not a deployment module")
        return module

    candidates = [v for v in vars(python_module).values() if isinstance(v, Module)]
    defined_here = [m for m in candidates if python_module_name.endswith(_snake_case(m.name))]
    if len(defined_here) == 1:
        return defined_here[0]
    if len(candidates) != 1:
        raise ValueError(
            f"'{python_module_name}' is ambiguous - expected exactly one deployment module, "
            f"got {len(candidates)}; use '{python_module_name}:<Name>'"
        )
    return candidates[0]


def _snake_case(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")
