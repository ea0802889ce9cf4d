"""CLI for ohsheet.

Usage:
    ohsheet auth [--no-browser]                    # Interactive OAuth login
    ohsheet status                                 # Show credential and token status
    ohsheet revoke                                 # Delete the cached token
    ohsheet read <spreadsheet-id> <range>          # Print values, tab separated
    ohsheet write <spreadsheet-id> <range> VALUE…  # Overwrite one row
    ohsheet append <spreadsheet-id> <range> VALUE… # Append one row

Global options (--credentials, --token, --scopes, --timeout) go before the command.
"""

from __future__ import annotations

import argparse
import logging
import sys
import webbrowser

from ohsheet.config import (
    DEFAULT_SCOPES,
    AccessConfig,
    default_credentials_path,
    default_token_path,
    get_credential_status,
)
from ohsheet.exceptions import AuthorizationRequired, OhSheetError, TokenError


def _prompt(no_browser: bool):
    def prompt(url: str) -> str:
        print("\nVisit this URL to grant access:\n")
        print(f"{url}\n")
        if not no_browser:
            webbrowser.open(url)
        print("After granting access, paste the authorization code or the redirect URL.")
        return input("Code or redirect URL: ")

    return prompt


def cmd_auth(access: AccessConfig, no_browser: bool = False, timeout: float | None = None) -> int:
    """Run the interactive OAuth flow and cache the token.

    A valid cached token is kept. An expired one is refreshed, and if the
    refresh is rejected a new authorization is started.
    """
    from ohsheet.credentials import load_config
    from ohsheet.token import TokenStore, authorize, refresh

    print("=" * 60)
    print("OHSHEET AUTHORIZATION")
    print("=" * 60)
    print(f"\nScopes: {', '.join(access.scopes)}")

    try:
        client_config = load_config(access.credentials_path, access.scopes)
    except OhSheetError as e:
        print(f"\nError: {e}")
        return 1

    store = TokenStore(access.token_path)
    token = store.load(client_config.scopes)

    if token is not None and not token.is_expired:
        print("\nAlready authorized with valid token")
        return cmd_status(access)

    if token is not None and token.refresh_token:
        try:
            refresh(client_config, token, store, timeout=timeout)
        except TokenError as e:
            print(f"\nRefresh failed: {e}")
            print("Starting new authorization flow...")
        else:
            print(f"\nToken refreshed and saved to {access.token_path}")
            return cmd_status(access)

    try:
        token = authorize(client_config, _prompt(no_browser), timeout=timeout)
        store.save(token, client_config)
    except OhSheetError as e:
        print(f"\nError: {e}")
        return 1

    print(f"\nToken saved to {access.token_path}")
    return cmd_status(access)


def cmd_status(access: AccessConfig) -> int:
    """Show credential and token status."""
    from ohsheet.token import TokenStore

    status = get_credential_status(access)
    creds = status["credentials"]
    print(f"credentials.json: {'[x]' if creds['exists'] else '[ ]'} {creds['path']}")
    token_file = status["token"]
    print(f"token.json:       {'[x]' if token_file['exists'] else '[ ]'} {token_file['path']}")

    token = TokenStore(access.token_path).load()
    if token is None:
        print("No token found - run 'ohsheet auth'")
        return 1

    print(f"Status     : {'expired' if token.is_expired else 'valid'}")
    print(f"Scopes     : {', '.join(token.scopes) or 'unknown'}")
    print(f"Expires at : {token.expiry.isoformat() if token.expiry else 'unknown'}")
    print(f"Refreshable: {'yes' if token.refresh_token else 'no'}")
    return 0


def cmd_revoke(access: AccessConfig) -> int:
    """Delete the cached token."""
    from ohsheet.token import TokenStore

    if TokenStore(access.token_path).delete():
        print("Token deleted; run 'ohsheet auth' to authorize again")
    else:
        print("No token to delete")
    return 0


def _connect(access: AccessConfig, timeout: float | None):
    from ohsheet.session import connect

    try:
        return connect(access, timeout=timeout)
    except AuthorizationRequired:
        print("Not authorized - run 'ohsheet auth'")
        return None
    except OhSheetError as e:
        print(f"Error: {e}")
        return None


def cmd_read(
    access: AccessConfig,
    spreadsheet_id: str,
    range_: str,
    render: str,
    timeout: float | None = None,
) -> int:
    """Print the values of a range, one row per line."""
    session = _connect(access, timeout)
    if session is None:
        return 1

    try:
        result = session.read(spreadsheet_id, range_, value_render_option=render)
    except OhSheetError as e:
        print(f"Error: {e}")
        return 1

    for row in result.values:
        print("\t".join(str(cell) for cell in row))
    return 0


def cmd_write(
    access: AccessConfig,
    spreadsheet_id: str,
    range_: str,
    values: list[str],
    append: bool = False,
    user_entered: bool = False,
    timeout: float | None = None,
) -> int:
    """Overwrite or append one row."""
    session = _connect(access, timeout)
    if session is None:
        return 1

    option = "USER_ENTERED" if user_entered else "RAW"
    try:
        if append:
            result = session.append(spreadsheet_id, range_, values, value_input_option=option)
            print(f"Appended to {result.updates.updated_range or range_}")
        else:
            update = session.write(spreadsheet_id, range_, values, value_input_option=option)
            print(f"Updated {update.updated_cells} cell(s) in {update.updated_range or range_}")
    except OhSheetError as e:
        print(f"Error: {e}")
        return 1
    return 0


def parse_scopes(scope_str: str | None) -> list[str]:
    """Parse comma-separated scopes."""
    if not scope_str:
        return list(DEFAULT_SCOPES)
    return [s.strip() for s in scope_str.split(",") if s.strip()]


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="ohsheet",
        description="Read and write Google Sheets ranges",
    )
    parser.add_argument(
        "--credentials",
        default=str(default_credentials_path()),
        help="OAuth client credentials file (default: %(default)s)",
    )
    parser.add_argument(
        "--token",
        default=str(default_token_path()),
        help="Cached token file (default: %(default)s)",
    )
    parser.add_argument(
        "--scopes",
        type=str,
        default=",".join(DEFAULT_SCOPES),
        help="Comma-separated scopes (default: %(default)s)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # auth
    auth_parser = subparsers.add_parser("auth", help="Interactive OAuth login")
    auth_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    # status / revoke
    subparsers.add_parser("status", help="Show credential and token status")
    subparsers.add_parser("revoke", help="Delete the cached token")

    # read
    read_parser = subparsers.add_parser("read", help="Print values from a range")
    read_parser.add_argument("spreadsheet_id", help="Spreadsheet ID")
    read_parser.add_argument("range", help="A1 notation, e.g. Sheet1!A1:C10")
    read_parser.add_argument(
        "--render",
        choices=["FORMATTED_VALUE", "UNFORMATTED_VALUE", "FORMULA"],
        default="FORMATTED_VALUE",
        help="How values are rendered (default: %(default)s)",
    )

    # write / append
    for name, help_text in (("write", "Overwrite one row"), ("append", "Append one row")):
        write_parser = subparsers.add_parser(name, help=help_text)
        write_parser.add_argument("spreadsheet_id", help="Spreadsheet ID")
        write_parser.add_argument("range", help="A1 notation, e.g. Sheet1!A1")
        write_parser.add_argument("values", nargs="*", help="Cell values")
        write_parser.add_argument(
            "--user-entered",
            action="store_true",
            help="Parse values as if typed into the UI (default: raw)",
        )

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        access = AccessConfig(
            token_path=args.token,
            credentials_path=args.credentials,
            scopes=tuple(parse_scopes(args.scopes)),
        )
    except OhSheetError as e:
        print(f"Error: {e}")
        return 1

    if args.command == "auth":
        return cmd_auth(access, args.no_browser, args.timeout)

    if args.command == "status":
        return cmd_status(access)

    if args.command == "revoke":
        return cmd_revoke(access)

    if args.command == "read":
        return cmd_read(access, args.spreadsheet_id, args.range, args.render, args.timeout)

    if args.command in ("write", "append"):
        return cmd_write(
            access,
            args.spreadsheet_id,
            args.range,
            args.values,
            append=args.command == "append",
            user_entered=args.user_entered,
            timeout=args.timeout,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
