"""Environment-driven configuration for the wizard."""

from beltic_wizard.core.config.schema import ConfigSchema, EnvVarSpec
from beltic_wizard.core.config.settings import (
    WizardConfig,
    WizardSettings,
    beltic_oauth_config,
)
from beltic_wizard.core.config.validation import ConfigError, load_env_var, validate_all

__all__ = [
    "ConfigSchema",
    "EnvVarSpec",
    "ConfigError",
    "load_env_var",
    "validate_all",
    "WizardConfig",
    "WizardSettings",
    "beltic_oauth_config",
]
