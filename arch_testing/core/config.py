"""Run configuration and its YAML/environment loading."""

from __future__ import annotations

import dataclasses
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, get_type_hints

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from arch_testing.constants import (
    BITCOIN_IMAGE_NAME,
    BITCOIN_IMAGE_TAG,
    BITCOIN_RPC_PASSWORD,
    BITCOIN_RPC_PORT,
    BITCOIN_RPC_USER,
    DEFAULT_LOCAL_HOST,
    DEFAULT_PEER_HOST,
    DEFAULT_SETUP_TIMEOUT,
    DEFAULT_TEST_TIMEOUT,
    MAX_SETUP_TIMEOUT,
    MAX_TEST_TIMEOUT,
    TITAN_HTTP_PORT,
    TITAN_IMAGE_NAME,
    TITAN_IMAGE_TAG,
    TITAN_TCP_PORT,
    VALIDATOR_IMAGE_NAME,
    VALIDATOR_IMAGE_TAG,
    VALIDATOR_RPC_PORT,
    VALIDATOR_WEBSOCKET_PORT,
    ServiceKind,
)
from arch_testing.containers.base import ServiceConfig, container_name_for
from arch_testing.containers.bitcoin import BitcoinConfig
from arch_testing.containers.titan import TitanConfig
from arch_testing.containers.validator import ValidatorConfig
from arch_testing.core.timeouts import clamp_timeout

logger = logging.getLogger(__name__)

CONFIG_ENV = "ARCH_TESTING_CONFIG"
DEFAULT_CONFIG_FILE = "arch-testing.yaml"
SETUP_TIMEOUT_ENV = "ARCH_TESTING_SETUP_TIMEOUT"
TEST_TIMEOUT_ENV = "ARCH_TESTING_TEST_TIMEOUT"


def new_run_id() -> str:
    """Return a random 8 hex-digit run identifier."""
    return uuid.uuid4().hex[:8]


@dataclass(frozen=True)
class TestRunnerConfig:
    """Settings for one provisioning run.

    Every field has a default, so ``TestRunnerConfig()`` starts the standard
    fleet with the default budgets. Use ``new`` to layer a YAML file and
    environment overrides on top, or ``with_overrides`` for a modified copy.

    Attributes
    ----------
    setup_timeout : float
        Requested budget for the setup phase, capped at ``MAX_SETUP_TIMEOUT``
    test_timeout : float
        Requested budget for the test phase, capped at ``MAX_TEST_TIMEOUT``
    run_id : str
        Suffix of every container name; random per config unless given
    local_host : str
        Host the harness uses to reach mapped ports
    peer_host : str
        Host containers use to reach each other's mapped ports
    """

    __test__: ClassVar[bool] = False

    bitcoin_image_name: str = BITCOIN_IMAGE_NAME
    bitcoin_image_tag: str = BITCOIN_IMAGE_TAG
    bitcoin_rpc_port: int = BITCOIN_RPC_PORT
    bitcoin_rpc_user: str = BITCOIN_RPC_USER
    bitcoin_rpc_password: str = BITCOIN_RPC_PASSWORD
    titan_image_name: str = TITAN_IMAGE_NAME
    titan_image_tag: str = TITAN_IMAGE_TAG
    titan_http_port: int = TITAN_HTTP_PORT
    titan_tcp_port: int = TITAN_TCP_PORT
    validator_image_name: str = VALIDATOR_IMAGE_NAME
    validator_image_tag: str = VALIDATOR_IMAGE_TAG
    validator_rpc_port: int = VALIDATOR_RPC_PORT
    validator_websocket_port: int = VALIDATOR_WEBSOCKET_PORT
    setup_timeout: float = DEFAULT_SETUP_TIMEOUT
    test_timeout: float = DEFAULT_TEST_TIMEOUT
    run_id: str = field(default_factory=new_run_id)
    local_host: str = DEFAULT_LOCAL_HOST
    peer_host: str = DEFAULT_PEER_HOST

    def __post_init__(self) -> None:
        for name in ("setup_timeout", "test_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not self.run_id:
            raise ValueError("run_id must not be empty")

    @classmethod
    def new(cls, config_path: str | None = None) -> TestRunnerConfig:
        """Build a config from defaults, an optional YAML file and the environment.

        Parameters
        ----------
        config_path : str | None
            Path to a YAML file. If None, checks ARCH_TESTING_CONFIG, then
            falls back to arch-testing.yaml; a missing file means defaults

        Returns
        -------
        TestRunnerConfig
            Resulting configuration

        Raises
        ------
        ValueError
            If the file is invalid YAML, has unknown keys or values of the
            wrong type, or an override variable is not a number
        """
        values = load_config_file(config_path)

        for env_name, key in ((SETUP_TIMEOUT_ENV, "setup_timeout"), (TEST_TIMEOUT_ENV, "test_timeout")):
            raw = os.environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                values[key] = float(raw)
            except ValueError as e:
                raise ValueError(f"{env_name} must be a number, got {raw!r}") from e

        return cls().with_overrides(**values)

    def with_overrides(self, **overrides: Any) -> TestRunnerConfig:
        """Return a copy with ``overrides`` applied.

        Raises
        ------
        ValueError
            If a key is not a config field or a value has the wrong type
        """
        validate_fields(type(self), overrides)
        return dataclasses.replace(self, **overrides)

    def effective_setup_timeout(self) -> float:
        return clamp_timeout(self.setup_timeout, MAX_SETUP_TIMEOUT, "setup_timeout")

    def effective_test_timeout(self) -> float:
        return clamp_timeout(self.test_timeout, MAX_TEST_TIMEOUT, "test_timeout")

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    def _common(self, kind: ServiceKind) -> dict[str, Any]:
        return {
            "container_name": container_name_for(kind, self.run_id),
            "startup_timeout": min(self.setup_timeout, MAX_SETUP_TIMEOUT),
            "run_id": self.run_id,
            "local_host": self.local_host,
            "peer_host": self.peer_host,
        }

    def bitcoin_config(self) -> BitcoinConfig:
        return BitcoinConfig(
            image_name=self.bitcoin_image_name,
            image_tag=self.bitcoin_image_tag,
            rpc_port=self.bitcoin_rpc_port,
            rpc_user=self.bitcoin_rpc_user,
            rpc_password=self.bitcoin_rpc_password,
            **self._common(ServiceKind.BITCOIN),
        )

    def titan_config(self) -> TitanConfig:
        return TitanConfig(
            image_name=self.titan_image_name,
            image_tag=self.titan_image_tag,
            http_port=self.titan_http_port,
            tcp_port=self.titan_tcp_port,
            **self._common(ServiceKind.TITAN),
        )

    def validator_config(self) -> ValidatorConfig:
        return ValidatorConfig(
            image_name=self.validator_image_name,
            image_tag=self.validator_image_tag,
            rpc_port=self.validator_rpc_port,
            websocket_port=self.validator_websocket_port,
            **self._common(ServiceKind.VALIDATOR),
        )

    def service_configs(self) -> dict[ServiceKind, ServiceConfig]:
        """Return per-service configs keyed by kind, in startup order."""
        return {
            ServiceKind.BITCOIN: self.bitcoin_config(),
            ServiceKind.TITAN: self.titan_config(),
            ServiceKind.VALIDATOR: self.validator_config(),
        }


def load_config_file(config_path: str | None = None) -> dict[str, Any]:
    """Load override values from a YAML file.

    Parameters
    ----------
    config_path : str | None
        Path to the file. If None, checks ARCH_TESTING_CONFIG, then falls
        back to arch-testing.yaml

    Returns
    -------
    dict[str, Any]
        Values with interpolations resolved; empty if the file doesn't exist

    Raises
    ------
    ValueError
        If the YAML is invalid, the top level is not a mapping, or an
        interpolation cannot be resolved
    RuntimeError
        If the file exists but cannot be read
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_FILE)

    config_file = Path(config_path)

    if not config_file.exists():
        logger.debug("No config file at %s, using defaults", config_file)
        return {}

    try:
        cfg = OmegaConf.load(config_file)
    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML config file %s: %s", config_file, e)
        raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        logger.error("Failed to read config file %s: %s", config_file, e)
        raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

    if cfg is None:
        return {}

    try:
        values = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
    except InterpolationResolutionError as e:
        logger.error("Failed to resolve configuration variables: %s", e)
        raise ValueError(f"Configuration variable resolution error: {e}") from e

    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ValueError(f"Config file {config_file} must contain a mapping at the top level")

    logger.debug("Loaded %d settings from %s", len(values), config_file)
    return values


def validate_fields(config_class: type, values: dict[str, Any]) -> None:
    """Check that ``values`` only names fields of ``config_class`` with matching types.

    Ints are accepted for float fields; bools are never accepted as numbers.

    Raises
    ------
    ValueError
        On the first unknown key or mistyped value
    """
    hints = get_type_hints(config_class)
    known = {f.name for f in dataclasses.fields(config_class)}

    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key, value in values.items():
        expected = hints[key]
        if isinstance(value, bool):
            valid = expected is bool
        elif expected is float:
            valid = isinstance(value, (int, float))
        else:
            valid = isinstance(value, expected)

        if not valid:
            raise ValueError(
                f"Configuration key '{key}' must be {expected.__name__}, "
                f"got {type(value).__name__}"
            )
