"""Session bootstrap: make sure the wizard runs with a usable login.

Stored credentials are reused while valid. Otherwise the user is asked
to log in, the OAuth flow runs, the console reports who the token
belongs to, and the result is saved for the next run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from beltic_wizard.core.api import ConsoleApiClient
from beltic_wizard.core.oauth.exceptions import AuthenticationCancelledError
from beltic_wizard.core.oauth.oauth import OAuthFlow
from beltic_wizard.core.oauth.storage import CredentialStore, StoredCredentials

_logger = logging.getLogger(__name__)

LOGIN_PROMPT = "Login to Beltic to continue?"
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
LOGIN_REQUIRED_MESSAGE = "Authentication is required to use the Beltic wizard."


class SessionBootstrapper:
    """Resolve the credentials a wizard run will use.

    Args:
        store: Where credentials are loaded from and saved to
        flow_factory: Builds a fresh OAuthFlow for each login attempt
        api_client: Console client used to identify the token's owner
        confirm: Asks the user a yes/no question
        console: Rich console for status output
        open_browser: Passed through to OAuthFlow.authenticate()
    """

    def __init__(
        self,
        store: CredentialStore,
        flow_factory: Callable[[], OAuthFlow],
        api_client: ConsoleApiClient,
        confirm: Callable[[str], bool],
        console: Console | None = None,
        open_browser: bool = True,
    ) -> None:
        self.store = store
        self.flow_factory = flow_factory
        self.api_client = api_client
        self.confirm = confirm
        self.console = console or Console()
        self.open_browser = open_browser

    def ensure_authenticated(self, force: bool = False) -> StoredCredentials:
        """Return usable credentials, logging in if needed.

        Args:
            force: Ignore stored credentials and log in again

        Raises:
            AuthenticationCancelledError: The user declined to log in
            OAuthError: The flow, identity fetch or save failed
        """
        existing = None if force else self.store.load()

        if existing is not None:
            if self.store.is_valid(existing):
                _logger.debug("Reusing stored credentials for %s", existing.email)
                self.console.print(f"Logged in as [cyan]{escape(existing.email)}[/cyan]")
                return existing
            _logger.info("Stored credentials for %s have expired", existing.email)
            self.console.print(f"[yellow]{SESSION_EXPIRED_MESSAGE}[/yellow]")

        if not self.confirm(LOGIN_PROMPT):
            raise AuthenticationCancelledError(LOGIN_REQUIRED_MESSAGE)

        return self._login()

    def _login(self) -> StoredCredentials:
        bundle = self.flow_factory().authenticate(open_browser=self.open_browser)

        with self.console.status("Fetching your developer profile..."):
            developer = self.api_client.fetch_developer(bundle.access_token)

        credentials = StoredCredentials.from_token_bundle(
            bundle,
            subject_id=developer.id,
            email=developer.email,
            display_name=developer.name,
            now=self.store.now(),
        )
        self.store.save(credentials)
        _logger.debug("Saved credentials for %s to %s", developer.email, self.store.path)

        self.console.print(f"Welcome, [cyan]{escape(developer.display_name)}[/cyan]!")
        return credentials
