"""
Configuration loader for Network Discovery Module.
Handles loading and validation of the YAML scan configuration with fallback to defaults.
"""

import yaml
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from ..utils.logger import Logger


# Priority order matters: the liveness check stops at the first port that answers.
DEFAULT_LIVENESS_PORTS = [80, 443, 22, 3389, 21, 23, 25, 53, 135, 139, 445, 993, 995, 1433, 3306, 5432]

DEFAULT_SCAN_PORTS = [21, 22, 23, 25, 53, 80, 110, 143, 443, 993, 995, 1433, 3389, 5432, 5985, 5986]


@dataclass
class ScanConfig:
    """Configuration for TCP discovery scans. Durations are in seconds."""
    liveness_ports: List[int] = field(default_factory=lambda: list(DEFAULT_LIVENESS_PORTS))
    scan_ports: List[int] = field(default_factory=lambda: list(DEFAULT_SCAN_PORTS))
    connect_timeout: float = 1.0
    banner_timeout: float = 3.0
    banner_grace_period: float = 2.0
    banner_max_bytes: int = 1024
    http_timeout: float = 3.0
    inter_host_delay: float = 0.1
    large_subnet_limit: int = 50
    progress_every: int = 5
    max_concurrent_scans: int = 1
    max_finished_jobs: int = 50


class ConfigLoader:
    """
    Loads and validates the YAML scan configuration.
    Provides fallback to default configuration when the file is missing or invalid.
    """

    DEFAULT_FILE = "scan_config.yml"

    def __init__(self, config_dir: Optional[str] = None, logger=None):
        """
        Initialize ConfigLoader.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to the config directory relative to this file.
            logger: Logger used for validation warnings
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent
        else:
            self.config_dir = Path(config_dir)

        self.logger = logger or Logger()

    def load_scan_config(self, config_file: str = DEFAULT_FILE) -> ScanConfig:
        """
        Load scan configuration from YAML file.

        Args:
            config_file: Name of the scan configuration file

        Returns:
            ScanConfig object with loaded or default configuration
        """
        config_path = self.config_dir / config_file

        if not config_path.exists():
            self.logger.warning(f"Scan config file not found at {config_path}. Using default configuration.")
            return ScanConfig()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing scan config file {config_path}: {e}")
            self.logger.warning("Using default scan configuration.")
            return ScanConfig()
        except OSError as e:
            self.logger.error(f"Unable to read scan config file {config_path}: {e}")
            self.logger.warning("Using default scan configuration.")
            return ScanConfig()

        if not isinstance(config_data, dict) or not isinstance(config_data.get("scan"), dict):
            self.logger.warning(f"Invalid scan config structure in {config_path}. Using default configuration.")
            return ScanConfig()

        return self.build_scan_config(config_data["scan"])

    def build_scan_config(self, scan_data: dict) -> ScanConfig:
        """
        Build a validated ScanConfig from a mapping, field by field.

        Args:
            scan_data: Mapping of ScanConfig field names to raw values

        Returns:
            ScanConfig with invalid entries replaced by defaults
        """
        defaults = ScanConfig()
        return ScanConfig(
            liveness_ports=self._validate_ports(
                scan_data.get("liveness_ports", defaults.liveness_ports), "liveness_ports", defaults.liveness_ports
            ),
            scan_ports=self._validate_ports(
                scan_data.get("scan_ports", defaults.scan_ports), "scan_ports", defaults.scan_ports
            ),
            connect_timeout=self._validate_positive_float(
                scan_data.get("connect_timeout", defaults.connect_timeout), "connect_timeout", defaults.connect_timeout
            ),
            banner_timeout=self._validate_positive_float(
                scan_data.get("banner_timeout", defaults.banner_timeout), "banner_timeout", defaults.banner_timeout
            ),
            banner_grace_period=self._validate_positive_float(
                scan_data.get("banner_grace_period", defaults.banner_grace_period),
                "banner_grace_period",
                defaults.banner_grace_period,
            ),
            banner_max_bytes=self._validate_positive_int(
                scan_data.get("banner_max_bytes", defaults.banner_max_bytes), "banner_max_bytes", defaults.banner_max_bytes
            ),
            http_timeout=self._validate_positive_float(
                scan_data.get("http_timeout", defaults.http_timeout), "http_timeout", defaults.http_timeout
            ),
            inter_host_delay=self._validate_non_negative_float(
                scan_data.get("inter_host_delay", defaults.inter_host_delay), "inter_host_delay", defaults.inter_host_delay
            ),
            large_subnet_limit=self._validate_positive_int(
                scan_data.get("large_subnet_limit", defaults.large_subnet_limit),
                "large_subnet_limit",
                defaults.large_subnet_limit,
            ),
            progress_every=self._validate_positive_int(
                scan_data.get("progress_every", defaults.progress_every), "progress_every", defaults.progress_every
            ),
            max_concurrent_scans=self._validate_positive_int(
                scan_data.get("max_concurrent_scans", defaults.max_concurrent_scans),
                "max_concurrent_scans",
                defaults.max_concurrent_scans,
            ),
            max_finished_jobs=self._validate_positive_int(
                scan_data.get("max_finished_jobs", defaults.max_finished_jobs),
                "max_finished_jobs",
                defaults.max_finished_jobs,
            ),
        )

    def _validate_positive_int(self, value: Any, field_name: str, default: int) -> int:
        """
        Validate that a value is a positive integer.

        Args:
            value: Value to validate
            field_name: Name of the field for error messages
            default: Default value to use if validation fails

        Returns:
            Validated integer value or default
        """
        try:
            int_value = int(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be an integer. Using default: {default}")
            return default
        if int_value <= 0:
            self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
            return default
        return int_value

    def _validate_positive_float(self, value: Any, field_name: str, default: float) -> float:
        try:
            float_value = float(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be a number. Using default: {default}")
            return default
        if float_value <= 0:
            self.logger.warning(f"Invalid {field_name}: {value}. Must be positive. Using default: {default}")
            return default
        return float_value

    def _validate_non_negative_float(self, value: Any, field_name: str, default: float) -> float:
        try:
            float_value = float(value)
        except (ValueError, TypeError):
            self.logger.warning(f"Invalid {field_name}: {value}. Must be a number. Using default: {default}")
            return default
        if float_value < 0:
            self.logger.warning(f"Invalid {field_name}: {value}. Must not be negative. Using default: {default}")
            return default
        return float_value

    def _validate_ports(self, ports: Any, field_name: str, default: List[int]) -> List[int]:
        """
        Validate a list of TCP ports, keeping order and dropping duplicates.

        Args:
            ports: Ports to validate
            field_name: Name of the field for error messages
            default: Default list used if nothing valid remains

        Returns:
            Validated port list or a copy of the default
        """
        if not isinstance(ports, list):
            self.logger.warning(f"Invalid {field_name}: {ports}. Must be a list. Using default.")
            return list(default)

        valid_ports: List[int] = []
        for port in ports:
            if isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535:
                if port not in valid_ports:
                    valid_ports.append(port)
            else:
                self.logger.warning(f"Invalid port in {field_name}: {port}. Skipping.")

        if not valid_ports:
            self.logger.warning(f"No valid ports found in {field_name}. Using default.")
            return list(default)

        return valid_ports

    def create_default_config(self, config_file: str = DEFAULT_FILE) -> None:
        """Write the default scan configuration if the file does not exist."""
        config_path = self.config_dir / config_file
        if config_path.exists():
            return

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                yaml.dump({"scan": asdict(ScanConfig())}, f, default_flow_style=False, indent=2, sort_keys=False)
            self.logger.info(f"Created default scan config at {config_path}")
        except OSError as e:
            self.logger.error(f"Failed to create default scan config: {e}")
