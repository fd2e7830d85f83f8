"""Declarative schema for the wizard's environment variables.

Every variable the wizard reads is declared once here with its default,
an optional coercion and a validator. ``validation.load_env_var`` reads a
single spec; the CLI validates all of them at startup.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from beltic_wizard.core.logging import VALID_LEVELS, level_name
from beltic_wizard.core.oauth.constants import OAuthClient


def _is_http_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


@dataclass(frozen=True)
class EnvVarSpec:
    """Specification for a single environment variable.

    Attributes:
        name: Environment variable name (e.g., "KYA_API_URL")
        default: Default value if env var not set
        type_hint: Type for validation (int, str, float, bool)
        description: Human-readable description for docs
        validator: Optional custom validation function
        coerce: Optional function to convert string to target type
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


class ConfigSchema:
    """Registry of all configuration environment variables.

    Each attribute is an EnvVarSpec that defines:
    - The environment variable name
    - Default value
    - Type for validation
    - Human-readable description
    - Optional validation rules
    """

    # === Logging Settings ===

    BELTIC_LOG_LEVEL = EnvVarSpec(
        name="BELTIC_LOG_LEVEL",
        default="WARNING",
        type_hint=str,
        description="Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: x in VALID_LEVELS,
        coerce=level_name,
    )

    BELTIC_LOG_FILE = EnvVarSpec(
        name="BELTIC_LOG_FILE",
        default=None,
        type_hint=str,
        description="Debug log file (defaults to beltic-wizard.log in the temp directory)",
        validator=lambda x: bool(x.strip()),
    )

    # === Credential Settings ===

    BELTIC_CONFIG_DIR = EnvVarSpec(
        name="BELTIC_CONFIG_DIR",
        default="~/.beltic",
        type_hint=str,
        description="Directory holding credentials.json",
        validator=lambda x: bool(x.strip()),
    )

    # === Platform Settings ===

    KYA_API_URL = EnvVarSpec(
        name="KYA_API_URL",
        default=OAuthClient.CONSOLE_URL,
        type_hint=str,
        description="Beltic console base URL (token exchange and developer API)",
        validator=_is_http_url,
        coerce=lambda v: v.strip().rstrip("/"),
    )

    WORKOS_CLIENT_ID = EnvVarSpec(
        name="WORKOS_CLIENT_ID",
        default=OAuthClient.CLIENT_ID,
        type_hint=str,
        description="Public OAuth client ID registered for the wizard",
        validator=lambda x: bool(x.strip()),
    )

    WORKOS_AUTHORIZE_URL = EnvVarSpec(
        name="WORKOS_AUTHORIZE_URL",
        default=OAuthClient.AUTHORIZE_URL,
        type_hint=str,
        description="OAuth authorization endpoint",
        validator=_is_http_url,
    )

    BELTIC_SIGNUP_URL = EnvVarSpec(
        name="BELTIC_SIGNUP_URL",
        default=None,
        type_hint=str,
        description="Optional signup page offered to new users before login",
        validator=_is_http_url,
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Get all environment variable specifications.

        Returns:
            Dictionary mapping spec names to EnvVarSpec objects
        """
        return {
            name: getattr(cls, name)
            for name in dir(cls)
            if isinstance(getattr(cls, name), EnvVarSpec)
        }

    @classmethod
    def get_spec(cls, name: str) -> EnvVarSpec | None:
        """Get specification for a specific env var by name.

        Args:
            name: The environment variable name (e.g., "KYA_API_URL")

        Returns:
            EnvVarSpec if found, None otherwise
        """
        for spec in cls.all_specs().values():
            if spec.name == name:
                return spec
        return None
