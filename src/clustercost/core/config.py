# src/clustercost/core/config.py

import logging
import os
import re
from datetime import timedelta
from typing import Dict, List

from dotenv import load_dotenv

from clustercost.core.exceptions import ConfigError
from clustercost.data.partial_cpu import PARTIAL_CPU_MAP

# Load environment variables from a .env file located in the project root
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

_DURATION_RE = re.compile(r"^(\d+)([smh])$")


def parse_duration(value: str) -> timedelta:
    """Parses a duration string such as '30s', '1m' or '2h' into a timedelta."""
    match = _DURATION_RE.match(value.strip().lower())
    if not match:
        raise ConfigError(f"Invalid duration '{value}'. Use a number followed by 's', 'm', or 'h'.")

    amount, unit = int(match.group(1)), match.group(2)
    unit_map = {"s": "seconds", "m": "minutes", "h": "hours"}
    return timedelta(**{unit_map[unit]: amount})


def parse_partial_cpu_entries(value: str) -> Dict[str, float]:
    """Parses 'type=cores,type=cores' into a dict."""
    entries = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        node_type, sep, cores = item.partition("=")
        if not sep or not node_type.strip():
            raise ConfigError(f"Invalid partial CPU entry '{item}'. Use 'instance-type=cores'.")
        try:
            parsed = float(cores)
        except ValueError as e:
            raise ConfigError(f"Invalid core count in partial CPU entry '{item}'.") from e
        if parsed <= 0:
            raise ConfigError(f"Core count must be positive in partial CPU entry '{item}'.")
        entries[node_type.strip()] = parsed
    return entries


class Config:
    """
    Handles the application's configuration by loading values from environment variables.
    """

    # --- Logging variables ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # CLOUD_PROVIDER is resolved at access time so callers can change the
    # environment after import and still get the right provider ID parser.
    @property
    def CLOUD_PROVIDER(self) -> str:
        return os.getenv("CLOUD_PROVIDER", "").lower()

    # --- Node assembly variables ---
    # Step of the active-minutes query; added to the last sample to close the window.
    ACTIVE_DATA_RESOLUTION = os.getenv("ACTIVE_DATA_RESOLUTION", "1m")
    NODE_INSTANCE_TYPE_LABELS = os.getenv(
        "NODE_INSTANCE_TYPE_LABELS",
        "node_kubernetes_io_instance_type,beta_kubernetes_io_instance_type",
    )
    PARTIAL_CPU_EXTRA_TYPES = os.getenv("PARTIAL_CPU_EXTRA_TYPES", "")

    @property
    def active_data_resolution(self) -> timedelta:
        return parse_duration(self.ACTIVE_DATA_RESOLUTION)

    @property
    def node_instance_type_labels(self) -> List[str]:
        return [label.strip() for label in self.NODE_INSTANCE_TYPE_LABELS.split(",") if label.strip()]

    @property
    def partial_cpu_map(self) -> Dict[str, float]:
        """
        Built-in partial-core table plus configured extras.

        Extras can only add instance types; built-in entries always win.
        """
        merged = parse_partial_cpu_entries(self.PARTIAL_CPU_EXTRA_TYPES)
        for node_type in set(merged) & set(PARTIAL_CPU_MAP):
            logging.getLogger(__name__).warning(
                "Ignoring PARTIAL_CPU_EXTRA_TYPES override for built-in type '%s'", node_type
            )
        merged.update(PARTIAL_CPU_MAP)
        return merged

    def validate_instance(self):
        if self.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR or CRITICAL.")
        parse_duration(self.ACTIVE_DATA_RESOLUTION)
        parse_partial_cpu_entries(self.PARTIAL_CPU_EXTRA_TYPES)


# Instantiate the config to be imported by other modules
config = Config()
config.validate_instance()
