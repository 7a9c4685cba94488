"""Configuration constants for bytecode-provenance library."""

# Environment variable consulted when no RPC URL is passed explicitly
RPC_URL_ENV = "ETH_RPC_URL"

# Seconds before a trace RPC call is abandoned (no retry)
RPC_TIMEOUT = 30

# Foundry writes artifacts to <project>/out/<File>.sol/<Contract>.json
DEFAULT_ARTIFACTS_DIR = "out"

# CREATE2 address derivation: keccak256(0xff ++ deployer ++ salt ++ keccak256(init_code))[12:]
CREATE2_PREFIX = b"\xff"
SALT_LENGTH = 32
SELECTOR_LENGTH = 4

# Solidity appends CBOR metadata followed by its length as a 2-byte big-endian integer
METADATA_LENGTH_SIZE = 2

# Label used for the reference side when no commit was requested
LATEST_COMMIT_LABEL = "latest"
