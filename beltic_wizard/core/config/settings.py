"""Wizard configuration module.

This module handles wizard-wide settings including:
- Logging level and debug log file
- Credential directory
- Beltic console and OAuth provider endpoints

Uses schema-based loading for automatic type coercion and validation.
"""

import os
import tempfile
from dataclasses import dataclass

from beltic_wizard.core.config.schema import ConfigSchema
from beltic_wizard.core.config.validation import load_env_var
from beltic_wizard.core.oauth.constants import OAuthClient
from beltic_wizard.core.oauth.oauth import OAuthConfig

LOG_FILE_NAME = "beltic-wizard.log"


@dataclass(frozen=True)
class WizardConfig:
    """Configuration snapshot for one wizard run.

    This is a frozen dataclass so commands can pass it around freely
    without worrying about later environment changes.

    Attributes:
        log_level: Console logging level name
        log_file: Path of the debug log file
        config_dir: Directory holding credentials.json
        api_url: Beltic console base URL, without a trailing slash
        client_id: Public OAuth client ID
        authorize_url: OAuth authorization endpoint
        signup_url: Optional signup page for new users
    """

    log_level: str
    log_file: str
    config_dir: str
    api_url: str
    client_id: str
    authorize_url: str
    signup_url: str | None = None

    @property
    def token_endpoint(self) -> str:
        return self.api_url + OAuthClient.TOKEN_PATH


class WizardSettings:
    """Manages wizard configuration from environment variables.

    This class uses the schema-based loading approach which provides:
    - Automatic type coercion
    - Validation with clear error messages
    - Single source of truth for default values
    """

    @staticmethod
    def load() -> WizardConfig:
        """Load wizard configuration using schema-based validation.

        Returns:
            WizardConfig with values from environment or defaults

        Raises:
            ConfigError: If any environment variable fails validation
        """
        log_file = load_env_var(ConfigSchema.BELTIC_LOG_FILE) or os.path.join(
            tempfile.gettempdir(), LOG_FILE_NAME
        )
        return WizardConfig(
            log_level=load_env_var(ConfigSchema.BELTIC_LOG_LEVEL),
            log_file=log_file,
            config_dir=os.path.expanduser(load_env_var(ConfigSchema.BELTIC_CONFIG_DIR)),
            api_url=load_env_var(ConfigSchema.KYA_API_URL),
            client_id=load_env_var(ConfigSchema.WORKOS_CLIENT_ID),
            authorize_url=load_env_var(ConfigSchema.WORKOS_AUTHORIZE_URL),
            signup_url=load_env_var(ConfigSchema.BELTIC_SIGNUP_URL),
        )


def beltic_oauth_config(settings: WizardConfig) -> OAuthConfig:
    """Build the OAuth configuration for the Beltic platform.

    Raises:
        ValidationError: If a configured endpoint is not acceptable
    """
    return OAuthConfig(
        authorization_endpoint=settings.authorize_url,
        token_endpoint=settings.token_endpoint,
        client_id=settings.client_id,
        scopes=OAuthClient.SCOPES,
        signup_endpoint=settings.signup_url,
        app_name=OAuthClient.APP_NAME,
        authorize_params={"provider": OAuthClient.PROVIDER},
    )
