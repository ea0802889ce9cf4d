"""OAuth token storage and the authorization code flow.

Tokens are cached in the google-auth "authorized user" JSON format, so the
same file can be read by ``google.oauth2.credentials.Credentials``:

    {
      "token": "...",
      "refresh_token": "...",
      "token_uri": "https://oauth2.googleapis.com/token",
      "client_id": "...",
      "client_secret": "...",
      "scopes": ["https://www.googleapis.com/auth/spreadsheets"],
      "type": "Bearer",
      "expiry": "2024-01-01T00:00:00Z"
    }

Plain OAuth2 token files (``access_token``/``token_type``/``expiry``) written
by other tools are accepted on load.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from google.oauth2.credentials import Credentials as GoogleCredentials

from ohsheet.credentials import ClientConfig
from ohsheet.exceptions import AuthError, AuthorizationRequired, ScopeMismatchError, TokenError

logger = logging.getLogger(__name__)

# Receives the authorization URL, returns the code or the full redirect URL.
Prompt = Callable[[str], str]

EXPIRY_LEEWAY = timedelta(seconds=60)
TOKEN_FILE_MODE = 0o600


def _parse_expiry(value: Any) -> datetime | None:
    """Parse an expiry given as ISO-8601 text or a POSIX timestamp."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported expiry value: {value!r}")

    text = value.replace("Z", "+00:00")
    # Normalise fractional seconds to microseconds (some writers emit nanoseconds)
    if "." in text:
        head, _, tail = text.partition(".")
        digits = len(tail) - len(tail.lstrip("0123456789"))
        text = f"{head}.{tail[:digits][:6].ljust(6, '0')}{tail[digits:]}"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    # Zero time means "no expiry"
    if dt.year == 1:
        return None
    return dt.astimezone(timezone.utc)


@dataclass
class Token:
    """A cached OAuth token."""

    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    token_type: str = "Bearer"
    scopes: tuple[str, ...] = ()

    @property
    def is_expired(self) -> bool:
        if self.expiry is None:
            return False
        return self.expiry - EXPIRY_LEEWAY <= datetime.now(timezone.utc)

    def missing_scopes(self, required: Iterable[str]) -> set[str]:
        """Scopes in ``required`` this token was not granted.

        A token without recorded scopes is assumed to cover everything.
        """
        if not self.scopes:
            return set()
        return set(required) - set(self.scopes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        """Build a token from either supported JSON shape."""
        access_token = data.get("token") or data.get("access_token")
        if not access_token:
            raise ValueError("token file has no access token")

        scopes = data.get("scopes")
        if scopes is None:
            scopes = data.get("scope", "").split()

        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expiry=_parse_expiry(data.get("expiry")),
            token_type=data.get("type") or data.get("token_type") or "Bearer",
            scopes=tuple(scopes),
        )

    def to_dict(self, client_config: ClientConfig | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
        }
        if client_config is not None:
            data["token_uri"] = client_config.token_uri
            data["client_id"] = client_config.client_id
            data["client_secret"] = client_config.client_secret
        data["scopes"] = list(self.scopes)
        data["type"] = self.token_type
        data["expiry"] = (
            self.expiry.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            if self.expiry
            else None
        )
        return data

    @classmethod
    def from_authlib(cls, token: dict[str, Any], default_scopes: Iterable[str] = ()) -> Token:
        """Convert an Authlib token response."""
        expires_at = token.get("expires_at")
        if expires_at is None and token.get("expires_in") is not None:
            expires_at = datetime.now(timezone.utc).timestamp() + int(token["expires_in"])

        scopes = token.get("scope", "").split() or list(default_scopes)
        return cls(
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            expiry=_parse_expiry(expires_at),
            token_type=token.get("token_type", "Bearer"),
            scopes=tuple(scopes),
        )

    def to_authlib(self) -> dict[str, Any]:
        token: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "scope": " ".join(self.scopes),
        }
        if self.refresh_token:
            token["refresh_token"] = self.refresh_token
        if self.expiry:
            token["expires_at"] = int(self.expiry.timestamp())
        return token

    def to_google_credentials(self, client_config: ClientConfig) -> GoogleCredentials:
        """Credentials object for the Google API client libraries."""
        # google-auth compares against naive UTC datetimes
        expiry = self.expiry.astimezone(timezone.utc).replace(tzinfo=None) if self.expiry else None
        return GoogleCredentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            token_uri=client_config.token_uri,
            client_id=client_config.client_id,
            client_secret=client_config.client_secret,
            scopes=list(client_config.scopes),
            expiry=expiry,
        )


class TokenStore:
    """Token cache backed by a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self, required_scopes: Iterable[str] = ()) -> Token | None:
        """Load the cached token.

        Returns None when the file is missing, unreadable, or was granted
        fewer scopes than ``required_scopes``.
        """
        if not self.path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.path) as f:
                token = Token.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e}")
            return None

        missing = token.missing_scopes(required_scopes)
        if missing:
            logger.warning(f"Token missing required scopes: {missing}")
            return None

        logger.info(f"Loaded token from {self.path}")
        return token

    def save(self, token: Token, client_config: ClientConfig | None = None) -> None:
        """Write the token, replacing any previous one. Readable by the owner only."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, TOKEN_FILE_MODE)
        with os.fdopen(fd, "w") as f:
            json.dump(token.to_dict(client_config), f, indent=2)
        # os.open only applies the mode to new files
        os.chmod(self.path, TOKEN_FILE_MODE)
        logger.info(f"Token saved to {self.path}")

    def delete(self) -> bool:
        """Remove the cached token. Returns True if a file was removed."""
        if not self.path.exists():
            return False
        self.path.unlink()
        logger.info(f"Deleted token {self.path}")
        return True


def _oauth_session(client_config: ClientConfig, **kwargs: Any) -> OAuth2Session:
    return OAuth2Session(
        client_id=client_config.client_id,
        client_secret=client_config.client_secret,
        scope=" ".join(client_config.scopes),
        redirect_uri=client_config.redirect_uri,
        token_endpoint=client_config.token_uri,
        token_endpoint_auth_method="client_secret_post",
        **kwargs,
    )


def authorization_url(client_config: ClientConfig) -> tuple[str, str]:
    """Build the consent URL.

    Returns:
        Tuple of (url, state).
    """
    session = _oauth_session(client_config)
    return session.create_authorization_url(
        client_config.auth_uri,
        access_type="offline",
        prompt="consent",
    )


def authorize(
    client_config: ClientConfig,
    prompt: Prompt,
    timeout: float | None = None,
) -> Token:
    """Run the authorization code flow once.

    Args:
        client_config: OAuth client configuration.
        prompt: Shown the authorization URL; blocks until the operator
            supplies the authorization code or the full redirect URL.
        timeout: Seconds to wait for the token endpoint.

    Raises:
        AuthError: If no code was supplied.
        TokenError: If the code exchange fails.
        ScopeMismatchError: If fewer scopes were granted than requested.
    """
    url, state = authorization_url(client_config)

    logger.info("Starting interactive authorization")
    answer = (prompt(url) or "").strip()
    if not answer:
        raise AuthError("No authorization code provided")

    session = _oauth_session(client_config)
    try:
        if "://" in answer:
            raw = session.fetch_token(
                client_config.token_uri,
                authorization_response=answer,
                state=state,
                timeout=timeout,
            )
        else:
            raw = session.fetch_token(client_config.token_uri, code=answer, timeout=timeout)
    except (AuthlibBaseError, requests.RequestException) as e:
        raise TokenError(f"Failed to exchange authorization code: {e}") from e

    token = Token.from_authlib(raw, default_scopes=client_config.scopes)
    missing = token.missing_scopes(client_config.scopes)
    if missing:
        raise ScopeMismatchError(missing)
    return token


def refresh(
    client_config: ClientConfig,
    token: Token,
    store: TokenStore,
    timeout: float | None = None,
) -> Token:
    """Refresh an expired token and persist the result.

    Raises:
        TokenError: If the refresh grant fails.
    """
    refreshed: list[Token] = []

    def update_token(
        raw: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ):
        new = Token.from_authlib(raw, default_scopes=token.scopes or client_config.scopes)
        if not new.refresh_token:
            new.refresh_token = refresh_token or token.refresh_token
        store.save(new, client_config)
        refreshed.append(new)

    logger.info("Token expired, refreshing...")
    session = _oauth_session(client_config, token=token.to_authlib(), update_token=update_token)
    try:
        raw = session.refresh_token(
            client_config.token_uri,
            refresh_token=token.refresh_token,
            timeout=timeout,
        )
    except (AuthlibBaseError, requests.RequestException) as e:
        raise TokenError(f"Failed to refresh token: {e}") from e

    if refreshed:
        return refreshed[-1]
    # No update hook call; persist ourselves
    new = Token.from_authlib(raw, default_scopes=token.scopes or client_config.scopes)
    new.refresh_token = new.refresh_token or token.refresh_token
    store.save(new, client_config)
    return new


def obtain_token(
    client_config: ClientConfig,
    token_path: str | Path,
    prompt: Prompt | None = None,
    timeout: float | None = None,
) -> Token:
    """Return a usable token, authorizing interactively only if needed.

    A valid cached token is returned as is. An expired one is refreshed when
    it carries a refresh token. Otherwise the authorization code flow runs
    once through ``prompt`` and its token is cached at ``token_path``.

    Raises:
        AuthorizationRequired: If authorization is needed and ``prompt`` is None.
        AuthError: If authorization or refresh fails.
    """
    store = TokenStore(token_path)
    token = store.load(client_config.scopes)

    if token is not None:
        if not token.is_expired:
            return token
        if token.refresh_token:
            return refresh(client_config, token, store, timeout=timeout)
        logger.info("Token expired without a refresh token")

    if prompt is None:
        url, _ = authorization_url(client_config)
        raise AuthorizationRequired(url)

    token = authorize(client_config, prompt, timeout=timeout)
    store.save(token, client_config)
    return token
