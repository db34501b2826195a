"""OAuth credential handling for the Google Drive client."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .errors import AuthenticationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]


def _run_installed_app_flow(credentials_path: Path, scopes: list[str]) -> Credentials:
    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes)
    return flow.run_local_server(port=0)


class GoogleCredentialsProvider:
    """
    Supplies a valid OAuth access token for Drive requests.

    A cached credential is reused while valid. An expired credential with a
    refresh token is refreshed; otherwise the installed-app consent flow is
    run against the client secret file. New or refreshed credentials are
    saved to ``token_path``.
    """

    def __init__(
        self,
        credentials_path: Path | str,
        token_path: Path | str,
        scopes: Optional[list[str]] = None,
        flow_runner: Optional[Callable[[Path, list[str]], Credentials]] = None,
    ):
        """
        Initialize the provider.

        Args:
            credentials_path: OAuth client secret JSON (installed app)
            token_path: Where the user token is cached between runs
            scopes: OAuth scopes; full Drive access by default
            flow_runner: Replacement for the interactive consent flow
        """
        self._credentials_path = Path(credentials_path)
        self._token_path = Path(token_path)
        self._scopes = scopes or list(SCOPES)
        self._flow_runner = flow_runner or _run_installed_app_flow
        self._credentials: Optional[Credentials] = None

    @property
    def token(self) -> str:
        """Current access token, refreshing first when needed."""
        return self.ensure_valid().token

    def ensure_valid(self) -> Credentials:
        """
        Return valid credentials, loading, refreshing or acquiring them.

        Raises:
            AuthenticationError: If no valid credential can be obtained
        """
        creds = self._credentials
        if creds is not None and creds.valid:
            return creds

        if creds is None:
            creds = self._load_token()

        try:
            if creds is not None and creds.expired and creds.refresh_token:
                logger.debug("Refreshing expired Google token")
                creds.refresh(Request())
            elif creds is None or not creds.valid:
                if not self._credentials_path.exists():
                    raise AuthenticationError(
                        f"Missing Google client secret file: {self._credentials_path}"
                    )
                logger.info("Starting Google OAuth consent flow")
                creds = self._flow_runner(self._credentials_path, self._scopes)
        except GoogleAuthError as e:
            raise AuthenticationError(f"Google authentication failed: {e}") from e

        if creds is None or not creds.valid:
            raise AuthenticationError("Google authentication did not yield a valid token")

        self._save_token(creds)
        self._credentials = creds
        return creds

    def _load_token(self) -> Optional[Credentials]:
        if not self._token_path.exists():
            return None
        try:
            return Credentials.from_authorized_user_file(str(self._token_path), self._scopes)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable token file {self._token_path}: {e}")
            return None

    def _save_token(self, creds: Credentials) -> None:
        try:
            self._token_path.parent.mkdir(parents=True, exist_ok=True)
            self._token_path.write_text(creds.to_json(), encoding="utf-8")
        except OSError as e:
            raise AuthenticationError(f"Cannot save token to {self._token_path}: {e}") from e
