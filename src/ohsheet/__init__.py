"""Read and write Google Sheets ranges with OAuth 2.0 authentication.

Usage:
    from ohsheet import AccessConfig, connect

    access = AccessConfig(
        token_path="token.json",
        credentials_path="credentials.json",
        scopes=("sheets",),
    )
    session = connect(access, prompt=input)

    # Read values
    rows = session.read(sheet_id, "Sheet1!A1:C10").values

    # Overwrite a row
    session.write(sheet_id, "Sheet1!A1", ["Name", "Age"])

    # Append a row below the existing table
    session.append(sheet_id, "Sheet1!A1", ["Alice", 30])

OAuth Setup:
    1. Create a Desktop OAuth client in Google Cloud Console and download it
    2. Save it as ~/.config/ohsheet/credentials.json (or pass its path)
    3. Authorize: ohsheet auth
"""

from __future__ import annotations

from ohsheet.config import SCOPES, AccessConfig
from ohsheet.credentials import ClientConfig, load_config
from ohsheet.exceptions import (
    ApiError,
    AuthError,
    AuthorizationRequired,
    ConfigError,
    CredentialsNotFoundError,
    OhSheetError,
    ScopeMismatchError,
    TokenError,
)
from ohsheet.ranges import AppendResult, UpdateResult, ValueRange, append, clear, read, write
from ohsheet.session import Session, connect
from ohsheet.token import Token, TokenStore, obtain_token

__version__ = "0.1.0"

__all__ = [
    "SCOPES",
    "AccessConfig",
    "ClientConfig",
    "load_config",
    "Token",
    "TokenStore",
    "obtain_token",
    "Session",
    "connect",
    "ValueRange",
    "UpdateResult",
    "AppendResult",
    "read",
    "write",
    "append",
    "clear",
    "OhSheetError",
    "ConfigError",
    "CredentialsNotFoundError",
    "AuthError",
    "TokenError",
    "ScopeMismatchError",
    "AuthorizationRequired",
    "ApiError",
]
