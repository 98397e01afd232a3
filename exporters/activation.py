"""Decides whether the expensive export step runs for this build."""

import logging
from typing import Any, Mapping, Optional, Tuple

logger = logging.getLogger('site_export_pipeline.exporters.activation')

# Explicit override read from the environment
OVERRIDE_ENV_VAR = 'SITE_EXPORT'
# Set by virtually every CI service
CI_ENV_VAR = 'CI'

TRUE_VALUES = {'true', '1', 'yes', 'on'}
FALSE_VALUES = {'false', '0', 'no', 'off'}


def parse_bool(value: Any) -> Optional[bool]:
    """Interpret a config or environment value as a boolean; None if it is not one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value) if value in (0, 1) else None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False
    return None


def should_export(override: Optional[bool], ci_signal: bool) -> bool:
    """
    Apply activation precedence.

    An explicit override (True or False) always wins; otherwise a CI signal
    turns export on; otherwise it stays off.
    """
    if override is not None:
        return override
    return bool(ci_signal)


def ci_signal_present(environ: Mapping[str, str]) -> bool:
    """True when the CI variable is set to anything other than a false value."""
    value = environ.get(CI_ENV_VAR)
    if value is None or not str(value).strip():
        return False
    return parse_bool(value) is not False


def resolve_activation(environ: Mapping[str, str], cli_override: Optional[bool] = None,
                       config_enabled: Any = None,
                       logger: logging.Logger = None) -> Tuple[bool, str]:
    """
    Resolve whether export is enabled and which signal decided it.

    Override sources are consulted in order: CLI flag, ``SITE_EXPORT``
    environment variable, ``export.enabled`` config value. Values that are
    not booleans are logged and skipped.

    Args:
        environ: Environment mapping (``os.environ`` in production)
        cli_override: Value of ``--export/--no-export``, None if not given
        config_enabled: ``export.enabled`` from the configuration file
        logger: Optional logger instance

    Returns:
        Tuple of (enabled, source) where source is 'override', 'ci' or 'default'
    """
    logger = logger or logging.getLogger('site_export_pipeline.exporters.activation')

    candidates = [
        ('--export/--no-export flag', cli_override),
        (f'{OVERRIDE_ENV_VAR} environment variable', environ.get(OVERRIDE_ENV_VAR)),
        ('export.enabled setting', config_enabled),
    ]

    override = None
    override_label = None
    for label, raw in candidates:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        value = parse_bool(raw)
        if value is None:
            logger.warning(f"Ignoring {label} value {raw!r}: not a boolean")
            continue
        override, override_label = value, label
        break

    ci_signal = ci_signal_present(environ)
    enabled = should_export(override, ci_signal)

    if override is not None:
        source = 'override'
        if ci_signal and not override:
            logger.info(f"Export disabled by {override_label} despite CI signal")
        else:
            logger.info(f"Export {'enabled' if enabled else 'disabled'} by {override_label}")
    elif ci_signal:
        source = 'ci'
        logger.info(f"Export enabled by {CI_ENV_VAR} environment variable")
    else:
        source = 'default'
        logger.info("Export disabled (no override and no CI signal)")

    return enabled, source


__all__ = [
    'OVERRIDE_ENV_VAR',
    'CI_ENV_VAR',
    'parse_bool',
    'should_export',
    'ci_signal_present',
    'resolve_activation'
]
