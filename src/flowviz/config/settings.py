import os
from dotenv import load_dotenv
load_dotenv()
# ---- Alephium explorer backend ----
NETWORK = os.environ.get("FLOWVIZ_NETWORK", "mainnet")

NETWORK_URLS = {
    "mainnet": os.environ.get("FLOWVIZ_MAINNET_URL", "https://backend.mainnet.alephium.org"),
    "testnet": os.environ.get("FLOWVIZ_TESTNET_URL", "https://backend.testnet.alephium.org"),
    "devnet": os.environ.get("FLOWVIZ_DEVNET_URL", "http://localhost:22973"),
}

EXPLORER_URLS = {
    "mainnet": "https://explorer.alephium.org",
    "testnet": "https://testnet.alephium.org",
    "devnet": "http://localhost:23000",
}

EXPLORER_BACKOFF_FACTOR = float(os.environ.get("FLOWVIZ_BACKOFF_FACTOR", "0.5"))
EXPLORER_TIMEOUT_SEC = 15
EXPLORER_MAX_RETRIES = 3
EXPLORER_RETRY_STATUSES = (429, 500, 502, 503, 504)
MAX_PAGE_SIZE = 100             # provider cap per transactions page

# ---- Amounts ----
ATTO_PER_ALPH = 10 ** 18
ASSET_SYMBOL = "ALPH"

# ---- Filters ----
DEFAULT_TRANSACTION_LIMIT = 50
DEFAULT_MAX_DEPTH = 1

# ---- Layout ----
NODE_WIDTH = 180
NODE_HEIGHT = 80
TRANSACTION_NODE_WIDTH = 200
TRANSACTION_NODE_HEIGHT = 100
LAYOUT_NODESEP = 100
LAYOUT_RANKSEP = 200
LAYOUT_PROG = "dot"              # Graphviz layered engine
