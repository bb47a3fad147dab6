import os
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _csv_env(name: str) -> list:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


# ================================================
# UPSTREAM ENDPOINTS
# ================================================
SUBGRAPH_API_URL = os.getenv(
    "SUBGRAPH_API_URL",
    "https://api.thegraph.com/subgraphs/name/artblocks/art-blocks",
)
# Hasura is optional: without it there are no project birthdays
HASURA_GRAPHQL_ENDPOINT = os.getenv("HASURA_GRAPHQL_ENDPOINT", "")
HASURA_GRAPHQL_ADMIN_SECRET = os.getenv("HASURA_GRAPHQL_ADMIN_SECRET", "")

RESERVOIR_API_KEY = os.getenv("RESERVOIR_API_KEY", "")
RESERVOIR_LIST_ENDPOINT = os.getenv(
    "RESERVOIR_LIST_ENDPOINT",
    "https://api.reservoir.tools/orders/asks/v4?sortBy=createdAt&limit=50",
)
ARTBLOCKS_TOKEN_API_URL = os.getenv("ARTBLOCKS_TOKEN_API_URL", "https://token.artblocks.io")

ETH_RPC_URL = os.getenv("ETH_RPC_URL", "")
OPENSEA_API_KEY = os.getenv("OPENSEA_API_KEY", "")

# Telegram configuration
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")

# ================================================
# INDEX / POLLER TIMING
# ================================================
# Refresh takes around one minute, so 60 minutes is recommended
METADATA_REFRESH_INTERVAL_MINUTES = float(os.getenv("METADATA_REFRESH_INTERVAL_MINUTES", "60"))
RESERVOIR_POLL_INTERVAL_MS = int(os.getenv("RESERVOIR_POLL_INTERVAL_MS", "30000"))
PROJECTS_PAGE_SIZE = int(os.getenv("PROJECTS_PAGE_SIZE", "1000"))  # subgraph max for `first`
SAMPLE_RETRY_LIMIT = int(os.getenv("SAMPLE_RETRY_LIMIT", "10"))
# Extra contract families indexed next to the core contracts
INDEX_COLLABORATIONS = os.getenv("INDEX_COLLABORATIONS", "true").lower() == "true"
INDEX_PBAB = os.getenv("INDEX_PBAB", "false").lower() == "true"
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# ================================================
# DAILY ROUTINES (UTC "HH:MM")
# ================================================
RANDOM_ART_AMOUNT = int(os.getenv("RANDOM_ART_AMOUNT", "10"))
RANDOM_ART_TIME = os.getenv("RANDOM_ART_TIME", "12:00")        # 8am EST
BIRTHDAY_CHECK_TIME = os.getenv("BIRTHDAY_CHECK_TIME", "14:00")  # 10am EST

# Makers whose listings are never announced
BAN_ADDRESSES = {a.lower() for a in _csv_env("BAN_ADDRESSES")}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Contract configuration
CONTRACTS_CONFIG_PATH = Path(__file__).parent / "contracts.yaml"


def load_contract_configs(path: Path = None):
    """Load core / collaboration contract addresses from contracts.yaml"""
    path = path or CONTRACTS_CONFIG_PATH
    if path.exists():
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {"core_contracts": {}, "collaboration_contracts": {}}
    return {"core_contracts": {}, "collaboration_contracts": {}}


def get_core_contracts(configs=None):
    """Return the list of core contract addresses (lower-case)"""
    configs = configs if configs is not None else CONTRACT_CONFIGS
    return [addr.lower() for addr in (configs.get('core_contracts') or {}).values()]


def get_collaboration_contracts(configs=None):
    """Return the list of collaboration contract addresses (lower-case)"""
    configs = configs if configs is not None else CONTRACT_CONFIGS
    return [addr.lower() for addr in (configs.get('collaboration_contracts') or {}).values()]


# Load contract configs on import
CONTRACT_CONFIGS = load_contract_configs()
