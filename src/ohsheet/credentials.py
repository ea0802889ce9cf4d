"""OAuth client credential loading.

Parses the client secret JSON downloaded from Google Cloud Console. Both
the Desktop ("installed") and Web application formats are accepted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ohsheet.config import resolve_scopes
from ohsheet.exceptions import ConfigError, CredentialsNotFoundError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URI = "http://localhost"


@dataclass(frozen=True)
class ClientConfig:
    """OAuth client configuration bound to a set of scopes."""

    client_id: str
    client_secret: str
    scopes: tuple[str, ...]
    auth_uri: str = AUTHORIZE_URL
    token_uri: str = TOKEN_URL
    redirect_uri: str = DEFAULT_REDIRECT_URI
    client_type: str = "installed"


def load_config(credentials_path: str | Path, scopes: Iterable[str]) -> ClientConfig:
    """Load an OAuth client configuration from a client secret file.

    Args:
        credentials_path: Path to the client secret JSON file.
        scopes: Scope URLs or aliases, in the order they should be requested.

    Returns:
        ClientConfig referencing exactly the requested scopes.

    Raises:
        CredentialsNotFoundError: If the file is missing or unreadable.
        ConfigError: If the file is not a valid client secret file.
    """
    path = Path(credentials_path).expanduser()
    resolved = resolve_scopes(scopes)

    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CredentialsNotFoundError(str(path)) from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in credentials file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Unable to read credentials file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid credentials file {path}: expected a JSON object")

    # Handle both web and installed app credential formats
    if "installed" in data:
        client_type = "installed"
    elif "web" in data:
        client_type = "web"
    else:
        raise ConfigError("Invalid credentials.json format. Expected 'installed' or 'web' key.")

    app_creds = data[client_type]
    if not isinstance(app_creds, dict):
        raise ConfigError(f"Invalid credentials file {path}: '{client_type}' must be an object")

    missing = [key for key in ("client_id", "client_secret") if not app_creds.get(key)]
    if missing:
        raise ConfigError(f"Credentials file {path} is missing: {', '.join(missing)}")

    redirect_uris = app_creds.get("redirect_uris") or [DEFAULT_REDIRECT_URI]

    config = ClientConfig(
        client_id=app_creds["client_id"],
        client_secret=app_creds["client_secret"],
        scopes=resolved,
        auth_uri=app_creds.get("auth_uri", AUTHORIZE_URL),
        token_uri=app_creds.get("token_uri", TOKEN_URL),
        redirect_uri=redirect_uris[0],
        client_type=client_type,
    )
    logger.debug(f"Loaded {client_type} client credentials from {path}")
    return config
