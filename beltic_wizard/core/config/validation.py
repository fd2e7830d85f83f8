"""Loading and validation of ConfigSchema variables."""

import os
from typing import Any

from beltic_wizard.core.config.schema import ConfigSchema, EnvVarSpec
from beltic_wizard.core.oauth.exceptions import ConfigurationError


class ConfigError(ConfigurationError):
    """An environment variable holds a value the wizard cannot use.

    Attributes:
        env_var: Variable name
        value: Raw value as found in the environment
        message: What is wrong with it
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def load_env_var(spec: EnvVarSpec) -> Any:
    """Read one variable, coerced and validated.

    Unset and empty variables both yield ``spec.default``, which is not
    passed through the validator.

    Raises:
        ConfigError: If coercion fails or the validator rejects the value
    """
    raw_value = os.environ.get(spec.name, "")
    if not raw_value:
        return spec.default

    coerce = spec.coerce or spec.type_hint
    try:
        value = coerce(raw_value)
    except ValueError as e:
        raise ConfigError(
            spec.name, raw_value, f"Cannot convert to {spec.type_hint.__name__}: {e}"
        ) from e

    if spec.validator is not None and not spec.validator(value):
        raise ConfigError(spec.name, raw_value, f"Invalid value ({spec.description})")

    return value


def validate_all() -> list[ConfigError]:
    """Load every schema variable and return the failures."""
    errors: list[ConfigError] = []
    for spec in ConfigSchema.all_specs().values():
        try:
            load_env_var(spec)
        except ConfigError as e:
            errors.append(e)
    return errors
