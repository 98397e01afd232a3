"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml

from exporters.activation import parse_bool, resolve_activation
from models import ExportConfiguration

DEFAULT_CONFIG: Dict[str, Any] = {
    'site': {
        'base_url': None,
        'directory': None,
        'content_selector': None
    },
    'export': {
        'enabled': None,
        'output_directory': './build/site/_export',
        'index_file': 'search-index.json',
        'max_workers': 1,
        'write_report': True,
        'dry_run': False
    },
    'metadata': {
        'words_per_minute': 200,
        'git_provenance': True
    },
    'logging': {
        'level': 'INFO',
        'file': None
    }
}

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Missing sections and keys are filled in from DEFAULT_CONFIG.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        return cls.with_defaults(config_data)

    @classmethod
    def with_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of config with every missing default filled in."""
        return _deep_merge(DEFAULT_CONFIG, config)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'site.base_url')
        cls._validate_url(get_nested(config, 'site.base_url'), 'site.base_url')

        site_dir = get_nested(config, 'site.directory')
        if site_dir and not os.path.isdir(site_dir):
            raise ValueError(f"site.directory '{site_dir}' is not a valid directory")

        selector = get_nested(config, 'site.content_selector')
        if selector is not None and not isinstance(selector, str):
            raise ValueError("site.content_selector must be a string")

        # export.enabled is only checked loosely; bad values are ignored at activation time
        cls._validate_required_field(config, 'export.output_directory')
        output_dir = get_nested(config, 'export.output_directory')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        index_file = get_nested(config, 'export.index_file', 'search-index.json')
        if not isinstance(index_file, str) or not index_file.strip():
            raise ValueError("export.index_file must be a non-empty string")
        if os.path.isabs(index_file) or '..' in index_file.replace('\\', '/').split('/'):
            raise ValueError("export.index_file must be a path inside export.output_directory")

        max_workers = get_nested(config, 'export.max_workers', 1)
        if not isinstance(max_workers, int) or isinstance(max_workers, bool) or max_workers < 1:
            raise ValueError("export.max_workers must be a positive integer")

        for field in ('export.write_report', 'export.dry_run', 'metadata.git_provenance'):
            value = get_nested(config, field)
            if value is not None and not isinstance(value, bool):
                raise ValueError(f"{field} must be a boolean")

        wpm = get_nested(config, 'metadata.words_per_minute', 200)
        if not isinstance(wpm, int) or isinstance(wpm, bool) or wpm < 1:
            raise ValueError("metadata.words_per_minute must be a positive integer")

        level = get_nested(config, 'logging.level', 'INFO')
        if level is not None and str(level).upper() not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {LOG_LEVELS}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        The ``--export/--no-export`` flag is deliberately not merged here:
        it is passed to ``resolve_export_configuration`` as the CLI override
        so activation can report which signal decided.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('site', 'export', 'metadata', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'base_url', None):
            merged['site']['base_url'] = args.base_url

        if getattr(args, 'site_dir', None):
            merged['site']['directory'] = args.site_dir

        if getattr(args, 'output_dir', None):
            merged['export']['output_directory'] = args.output_dir

        if getattr(args, 'workers', None) is not None:
            merged['export']['max_workers'] = args.workers

        if getattr(args, 'dry_run', False):
            merged['export']['dry_run'] = True

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValueError(f"Invalid URL for {field_name}: {url}. Error: {str(e)}")
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def resolve_export_configuration(config: Dict[str, Any], environ: Mapping[str, str],
                                 cli_override: Optional[bool] = None,
                                 logger=None) -> ExportConfiguration:
    """
    Build the immutable ExportConfiguration for this run.

    This is the only place the process environment is consulted; everything
    downstream receives the resolved value.

    Args:
        config: Validated configuration dictionary
        environ: Environment mapping (``os.environ`` in production)
        cli_override: ``--export/--no-export`` value, None if not given
        logger: Optional logger instance

    Returns:
        Frozen ExportConfiguration
    """
    enabled, source = resolve_activation(
        environ,
        cli_override=cli_override,
        config_enabled=get_nested(config, 'export.enabled'),
        logger=logger
    )

    return ExportConfiguration(
        enabled=enabled,
        output_directory=str(get_nested(config, 'export.output_directory', DEFAULT_CONFIG['export']['output_directory'])),
        base_url=get_nested(config, 'site.base_url') or '',
        source=source,
        index_file=get_nested(config, 'export.index_file', 'search-index.json'),
        max_workers=get_nested(config, 'export.max_workers', 1),
        dry_run=parse_bool(get_nested(config, 'export.dry_run', False)) or False,
        write_report=get_nested(config, 'export.write_report', True) is not False
    )


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a deep copy of base; nested dicts are merged key by key."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "site.base_url")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config

    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested', 'resolve_export_configuration']
