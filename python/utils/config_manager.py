#!/usr/bin/env python3
"""
Configuration Manager for the Helm chart migration

This module handles loading configuration from config.yaml and environment
variables, and turns it (together with the command line) into the immutable
MigrationConfig that the migration run receives.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml

from utils.chart_models import RegistryEndpoint
from utils.error_utils import ConfigValidationError, create_config_error

# Harbor silently caps page_size at 100
MAX_PAGE_SIZE = 100

DEFAULT_CONFIG: Dict[str, Any] = {
    "source": {"url": "", "username": "", "password": "", "tls_verify": True},
    "destination": {"url": "", "username": "", "password": "", "tls_verify": True},
    "migration": {
        "dest_path": "",
        "projects": [],
        "page_size": 10,
        "fetch_timeout": 5,
        "max_workers": 1,
        "staging_dir": None,
        "output_file": None,
        "show_progress": True,
    },
    "helm": {"binary": "helm", "timeout": 300},
}

# Environment variables that override the config file, keyed by (section, key)
ENV_OVERRIDES = {
    ("source", "url"): "SOURCE_REGISTRY_URL",
    ("source", "username"): "SOURCE_REGISTRY_USERNAME",
    ("source", "password"): "SOURCE_REGISTRY_PASSWORD",
    ("destination", "url"): "DESTINATION_REGISTRY_URL",
    ("destination", "username"): "DESTINATION_REGISTRY_USERNAME",
    ("destination", "password"): "DESTINATION_REGISTRY_PASSWORD",
    ("helm", "binary"): "HELM_BINARY",
}


@dataclass(frozen=True)
class MigrationConfig:
    """Everything a migration run needs, fixed once at startup."""

    source: RegistryEndpoint
    destination: RegistryEndpoint
    dest_path: str = ""
    projects: Tuple[str, ...] = ()
    page_size: int = 10
    fetch_timeout: float = 5.0
    helm_binary: str = "helm"
    helm_timeout: int = 300
    max_workers: int = 1
    staging_dir: Optional[str] = None
    output_file: Optional[str] = None
    show_progress: bool = True

    def validate(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors = []

        if not self.source.url or not self.source.url.strip():
            errors.append("Source registry URL is required (--source-url or SOURCE_REGISTRY_URL)")
        if not self.destination.url or not self.destination.url.strip():
            errors.append("Destination registry URL is required (--destination-url or DESTINATION_REGISTRY_URL)")

        if not isinstance(self.page_size, int) or not 1 <= self.page_size <= MAX_PAGE_SIZE:
            errors.append(f"migration.page_size must be an integer between 1 and {MAX_PAGE_SIZE}, got: {self.page_size}")
        if not isinstance(self.fetch_timeout, (int, float)) or self.fetch_timeout <= 0:
            errors.append(f"migration.fetch_timeout must be a positive number (seconds), got: {self.fetch_timeout}")
        if not isinstance(self.helm_timeout, int) or self.helm_timeout < 1:
            errors.append(f"helm.timeout must be a positive integer (seconds), got: {self.helm_timeout}")
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            errors.append(f"migration.max_workers must be a positive integer, got: {self.max_workers}")
        if not self.helm_binary:
            errors.append("helm.binary is required and cannot be empty")
        if any(not project or not project.strip() for project in self.projects):
            errors.append("Project names cannot be empty")

        if errors:
            error = create_config_error(errors)
            logging.error(str(error))
            raise error


class ConfigManager:
    """Loads the YAML config file and applies environment overrides"""

    def __init__(self, config_file: str = None):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to CONFIG_FILE env var or config.yaml)
        """
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        if not os.path.exists(self.config_file):
            logging.debug(f"Config file {self.config_file} not found, using defaults")
            return self._merge_config(DEFAULT_CONFIG, {})

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}")

        if not isinstance(user_config, dict):
            raise ConfigValidationError(f"Config file {self.config_file} must contain a mapping")
        return self._merge_config(DEFAULT_CONFIG, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = {key: (dict(value) if isinstance(value, dict) else value) for key, value in default.items()}
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def get(self, section: str, key: str) -> Any:
        """Get a value, letting the matching environment variable take precedence"""
        env_var = ENV_OVERRIDES.get((section, key))
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]
        return self.config.get(section, {}).get(key)

    def get_endpoint(self, side: str) -> RegistryEndpoint:
        """Get the registry endpoint for 'source' or 'destination'"""
        return RegistryEndpoint(
            url=self.get(side, "url") or "",
            username=self.get(side, "username") or "",
            password=self.get(side, "password") or "",
            tls_verify=self.get_bool(side, "tls_verify"),
        )

    def get_bool(self, section: str, key: str) -> bool:
        """Get a boolean, accepting quoted strings such as "false" or "no" """
        value = self.get(section, key)
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in ("true", "1", "yes", "on"):
                return True
            if normalized in ("false", "0", "no", "off"):
                return False
            raise ConfigValidationError(f"{section}.{key} must be true or false, got: {value}")
        return bool(value)

    def get_projects(self) -> Tuple[str, ...]:
        """Get the configured project list; a single project name is accepted as a one-item list"""
        value = self.get("migration", "projects")
        if value is None or value == "":
            return ()
        if isinstance(value, str):
            return (value,)
        if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
            raise ConfigValidationError(
                f"migration.projects must be a list of project names, got: {value} (type: {type(value).__name__})"
            )
        return tuple(value)

    def _coerce(self, section: str, key: str, kind):
        value = self.get(section, key)
        try:
            return kind(value)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"{section}.{key} must be {kind.__name__}, got: {value} (type: {type(value).__name__})"
            )

    def get_page_size(self) -> int:
        return self._coerce("migration", "page_size", int)

    def get_fetch_timeout(self) -> float:
        return self._coerce("migration", "fetch_timeout", float)

    def get_max_workers(self) -> int:
        return self._coerce("migration", "max_workers", int)

    def get_helm_timeout(self) -> int:
        return self._coerce("helm", "timeout", int)


def build_migration_config(args, config_manager: ConfigManager) -> MigrationConfig:
    """Combine parsed CLI arguments with file/env configuration and validate the result.

    Command line flags win over environment variables, which win over the config file.
    """

    def pick(cli_value, fallback):
        return fallback if cli_value is None else cli_value

    source = config_manager.get_endpoint("source")
    destination = config_manager.get_endpoint("destination")

    source = RegistryEndpoint(
        url=pick(args.source_url, source.url),
        username=pick(args.source_username, source.username),
        password=pick(args.source_password, source.password),
        tls_verify=source.tls_verify and not args.source_insecure,
    )
    destination = RegistryEndpoint(
        url=pick(args.destination_url, destination.url),
        username=pick(args.destination_username, destination.username),
        password=pick(args.destination_password, destination.password),
        tls_verify=destination.tls_verify and not args.destination_insecure,
    )

    projects = tuple(args.project) if args.project else config_manager.get_projects()
    show_progress = config_manager.get_bool("migration", "show_progress") and not args.no_progress

    config = MigrationConfig(
        source=source,
        destination=destination,
        dest_path=pick(args.destpath, config_manager.get("migration", "dest_path") or ""),
        projects=projects,
        page_size=config_manager.get_page_size(),
        fetch_timeout=pick(args.fetch_timeout, config_manager.get_fetch_timeout()),
        helm_binary=pick(args.helm_binary, config_manager.get("helm", "binary")),
        helm_timeout=config_manager.get_helm_timeout(),
        max_workers=pick(args.max_workers, config_manager.get_max_workers()),
        staging_dir=pick(args.staging_dir, config_manager.get("migration", "staging_dir")),
        output_file=pick(args.output, config_manager.get("migration", "output_file")),
        show_progress=show_progress,
    )
    config.validate()
    return config
