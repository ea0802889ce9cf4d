"""Access configuration and default file locations.

Credentials are looked up in ``~/.config/ohsheet`` unless paths are given
explicitly or ``OHSHEET_HOME`` points somewhere else:

    credentials.json  - OAuth client credentials (Desktop app)
    token.json        - cached OAuth token
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ohsheet.exceptions import ConfigError

if TYPE_CHECKING:
    from ohsheet.session import Session
    from ohsheet.token import Prompt

# Common Google OAuth scopes for spreadsheet work
SCOPES = {
    "sheets": "https://www.googleapis.com/auth/spreadsheets",
    "sheets_readonly": "https://www.googleapis.com/auth/spreadsheets.readonly",
    "drive": "https://www.googleapis.com/auth/drive",
    "drive_readonly": "https://www.googleapis.com/auth/drive.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
}

DEFAULT_SCOPES = ("sheets",)


def config_home() -> Path:
    """Directory holding the default credentials and token files."""
    home = os.environ.get("OHSHEET_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".config" / "ohsheet"


def default_credentials_path() -> Path:
    return config_home() / "credentials.json"


def default_token_path() -> Path:
    return config_home() / "token.json"


def resolve_scopes(scopes: Iterable[str]) -> tuple[str, ...]:
    """Resolve scope names to full URLs, keeping their order.

    Raises:
        ConfigError: If a name is neither a URL nor a known alias.
    """
    resolved = []
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.append(scope)
        elif scope in SCOPES:
            resolved.append(SCOPES[scope])
        else:
            raise ConfigError(
                f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
            )
    return tuple(resolved)


@dataclass(frozen=True)
class AccessConfig:
    """Where to find the OAuth client credentials and token, and what to ask for.

    Attributes:
        token_path: Cached token file. Created on first authorization; delete
            it to force a new consent (e.g. after changing scopes).
        credentials_path: OAuth client secret file from Google Cloud Console.
        scopes: Scope URLs or aliases from ``SCOPES``, in request order.
    """

    token_path: Path = field(default_factory=default_token_path)
    credentials_path: Path = field(default_factory=default_credentials_path)
    scopes: tuple[str, ...] = DEFAULT_SCOPES

    def __post_init__(self):
        # Frozen: normalise through object.__setattr__
        object.__setattr__(self, "token_path", Path(self.token_path).expanduser())
        object.__setattr__(self, "credentials_path", Path(self.credentials_path).expanduser())
        if isinstance(self.scopes, str):
            raise ConfigError("scopes must be a sequence of scope names, not a string")
        object.__setattr__(self, "scopes", tuple(self.scopes))
        # Fail early on unknown aliases
        resolve_scopes(self.scopes)

    def connect(self, prompt: Prompt | None = None, timeout: float | None = None) -> Session:
        """Open an authenticated session. See :func:`ohsheet.session.connect`."""
        from ohsheet.session import connect

        return connect(self, prompt=prompt, timeout=timeout)


def get_credential_status(config: AccessConfig | None = None) -> dict:
    """Report which of the configured files exist.

    Returns:
        Dictionary with credential status.
    """
    config = config or AccessConfig()
    return {
        "config_home": str(config_home()),
        "credentials": {
            "path": str(config.credentials_path),
            "exists": config.credentials_path.exists(),
        },
        "token": {
            "path": str(config.token_path),
            "exists": config.token_path.exists(),
        },
        "scopes": list(config.scopes),
    }
