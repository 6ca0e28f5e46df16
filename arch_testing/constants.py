"""Global constants for arch-testing.

Default images, ports and timeout budgets for the provisioned fleet. All
durations are in seconds.
"""

from enum import Enum

MAX_SETUP_TIMEOUT = 120.0
"""Hard ceiling for the setup phase budget.

Any larger requested setup timeout is capped at this value.
"""

MAX_TEST_TIMEOUT = 300.0
"""Hard ceiling for the test phase budget.

Any larger requested test timeout is capped at this value.
"""

DEFAULT_SETUP_TIMEOUT = 15.0
"""Default budget for starting and syncing all containers."""

DEFAULT_TEST_TIMEOUT = 30.0
"""Default budget for running the caller's test routine."""

DEFAULT_LOCAL_HOST = "127.0.0.1"
"""Address at which the harness process reaches mapped container ports."""

DEFAULT_PEER_HOST = "host.docker.internal"
"""Address at which one container reaches another container's mapped ports.

Resolved through the ``host-gateway`` extra host on Linux engines.
"""

CONTAINER_NAME_PREFIX = "arch-testing"
"""Prefix shared by every container name created by the harness."""

RUN_LABEL = "arch-testing.run-id"
"""Docker label carrying the run identifier of a launched container."""

BITCOIN_IMAGE_NAME = "bitcoin/bitcoin"
BITCOIN_IMAGE_TAG = "29.0"
BITCOIN_RPC_PORT = 18443
BITCOIN_RPC_USER = "bitcoind_username"
BITCOIN_RPC_PASSWORD = "bitcoind_password"
BITCOIN_DATA_DIR = "/var/lib/bitcoin-core"

BITCOIN_WALLET_NAME = "testwallet"
"""Wallet created and funded on the ledger-source after it becomes ready."""

BITCOIN_FUNDING_BLOCKS = 100
"""Blocks mined to the test wallet so its first coinbase outputs mature."""

TITAN_IMAGE_NAME = "ghcr.io/saturnbtc/titan"
TITAN_IMAGE_TAG = "latest"
TITAN_HTTP_PORT = 3030
TITAN_TCP_PORT = 8080

TITAN_SYNCED_MESSAGE = "Synced to tip"
"""Log line emitted by Titan once it has caught up with bitcoind."""

VALIDATOR_IMAGE_NAME = "ghcr.io/arch-network/local_validator"
VALIDATOR_IMAGE_TAG = "0.5.8"
VALIDATOR_RPC_PORT = 9002
VALIDATOR_WEBSOCKET_PORT = 29002

PROBE_INITIAL_INTERVAL = 0.5
"""First delay between readiness probe attempts."""

PROBE_MULTIPLIER = 1.5
"""Growth factor applied to the probe delay after each failed attempt."""

PROBE_MAX_INTERVAL = 10.0
"""Upper bound for a single delay between probe attempts."""

PROBE_RANDOMIZATION = 0.5
"""Jitter factor; each delay is drawn from ``delay * [1 - r, 1 + r]``."""

CONTAINER_STATUS_POLL_INTERVAL = 0.5
"""Delay between container status checks while waiting for it to run."""

CONTAINER_STOP_TIMEOUT = 10
"""Seconds docker waits for a container to exit before killing it."""

RPC_REQUEST_TIMEOUT = 10.0
"""Per-request timeout for RPC and HTTP client calls."""

TRANSACTION_POLL_INTERVAL = 0.5
"""Delay between processed-transaction lookups."""

TRANSACTION_WAIT_TIMEOUT = 60.0
"""Default budget for a transaction to leave the queued state."""

BLOCKING_WORKER_COUNT = 8
"""Size of the thread pool used for blocking work."""


class ServiceKind(Enum):
    """Roles of the provisioned services, in dependency order."""

    BITCOIN = "bitcoin"
    TITAN = "titan"
    VALIDATOR = "validator"


SERVICE_ORDER = (ServiceKind.BITCOIN, ServiceKind.TITAN, ServiceKind.VALIDATOR)
"""Startup order; teardown runs in reverse."""

BITCOIN_NETWORK = "regtest"
"""Bitcoin network used by bitcoind and Titan."""

ARCH_NETWORK_MODE = "localnet"
"""Network mode passed to the local validator."""
