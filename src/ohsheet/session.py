"""Authenticated Sheets API sessions."""

from __future__ import annotations

import logging
from typing import Any

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError

from ohsheet import ranges
from ohsheet.config import AccessConfig
from ohsheet.credentials import load_config
from ohsheet.exceptions import ApiError
from ohsheet.ranges import AppendResult, UpdateResult, Values, ValueRange
from ohsheet.token import Prompt, obtain_token

logger = logging.getLogger(__name__)


class Session:
    """An authenticated handle to the Sheets API.

    Not safe to share between threads.

    Usage:
        session = connect(AccessConfig(token_path="token.json",
                                       credentials_path="credentials.json",
                                       scopes=("sheets",)))

        session.write(sheet_id, "Sheet1!A1", ["Name", "Age"])
        session.append(sheet_id, "Sheet1!A1", ["Alice", 30])
        rows = session.read(sheet_id, "Sheet1!A1:B").values
    """

    def __init__(self, service: Any, config: AccessConfig | None = None) -> None:
        self.service = service
        self.config = config

    def read(
        self,
        spreadsheet_id: str,
        range_: str,
        value_render_option: str = "FORMATTED_VALUE",
    ) -> ValueRange:
        return ranges.read(self, spreadsheet_id, range_, value_render_option)

    def write(
        self,
        spreadsheet_id: str,
        range_: str,
        values: Values,
        value_input_option: str = "RAW",
    ) -> UpdateResult:
        return ranges.write(self, spreadsheet_id, range_, values, value_input_option)

    def append(
        self,
        spreadsheet_id: str,
        range_: str,
        values: Values,
        value_input_option: str = "RAW",
    ) -> AppendResult:
        return ranges.append(self, spreadsheet_id, range_, values, value_input_option)

    def clear(self, spreadsheet_id: str, range_: str) -> str:
        return ranges.clear(self, spreadsheet_id, range_)


def connect(
    config: AccessConfig,
    prompt: Prompt | None = None,
    timeout: float | None = None,
) -> Session:
    """Open an authenticated Sheets v4 session.

    Args:
        config: Credential and token locations plus requested scopes.
        prompt: Called with the consent URL if no usable token is cached;
            must return the authorization code or the redirect URL.
        timeout: Socket timeout in seconds for every request made through
            the session, including the token exchange.

    Raises:
        ConfigError: If the client credentials cannot be loaded.
        AuthError: If no token can be obtained.
        ApiError: If the API client cannot be built.
    """
    client_config = load_config(config.credentials_path, config.scopes)
    token = obtain_token(client_config, config.token_path, prompt=prompt, timeout=timeout)

    credentials = token.to_google_credentials(client_config)
    http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    try:
        service = build("sheets", "v4", http=http, cache_discovery=False)
    except (GoogleApiClientError, httplib2.HttpLib2Error, OSError) as e:
        raise ApiError(f"Unable to build Sheets client: {e}") from e

    logger.info(f"Connected to Sheets API with scopes: {list(client_config.scopes)}")
    return Session(service, config=config)
