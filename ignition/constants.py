from pathlib import Path

#
# Filesystem
#

IGNITION_DIR = Path(__file__).parent
PROJECT_DIR = IGNITION_DIR.parent
DEPLOYMENTS_DIR = PROJECT_DIR / "deployments"
ARTIFACTS_DIR = PROJECT_DIR / "artifacts"

JOURNAL_FILENAME = "journal.jsonl"
DEPLOYMENT_ID_TEMPLATE = "chain-{chain_id}"

STANDARD_JOURNAL_JSON_FORMAT = {"sort_keys": True, "separators": (",", ":")}

#
# Identifiers
#

# Qualified action ids look like "ContractDeployment#ContractProxy"
MODULE_ID_SEPARATOR = "#"

#
# Contracts
#

ERC1967_PROXY = "ERC1967Proxy"

LOCAL_CHAIN_IDS = (1337, 31337)
