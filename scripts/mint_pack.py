#!/usr/bin/env python3
"""
Run the full pack purchase from a terminal, without the game client.

- Starts an auth session and prints the QR payload (scan it with the wallet app).
- Waits for the wallet link, polling every 3s for up to 120s.
- Charges the pack fee to RECEIVER_WALLET and mints MINT_COUNT random tokens.

Reads the same .env / environment as the API server.
"""

import argparse
import logging
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.append(BACKEND)

from config import Settings  # noqa: E402
from errors import PackBackendError  # noqa: E402
from platform_client import PlatformClient  # noqa: E402
from platform_schema import build_schema  # noqa: E402
from sessions import SessionPoller, VerificationSessionManager  # noqa: E402
from workflow import build_mint_workflow  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Authenticate a wallet and mint one RPS pack.")
    parser.add_argument("--session", type=str, default=None, help="Reuse an existing auth session id instead of starting a new one.")
    parser.add_argument("--external-id", type=str, default=None, help="Correlation id attached to a new auth session.")
    parser.add_argument("--check-only", action="store_true", help="Stop after the wallet is linked; do not charge or mint.")
    args = parser.parse_args()

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    client = PlatformClient(settings.platform_url, settings.enjin_api_token, timeout=settings.request_timeout_seconds)
    try:
        platform = build_schema(settings.platform_schema, client, callback_url=settings.auth_callback_url)
        session_id = args.session
        if not session_id:
            session = VerificationSessionManager(platform).create(external_id=args.external_id)
            session_id = session.id
            print(f"[auth] session={session.id}")
            print(f"[auth] scan: {session.qr_payload}")
        link = SessionPoller(platform).wait_for_wallet(session_id)
        print(f"[auth] wallet linked: {link.wallet_address}")
        if args.check_only:
            return
        result = build_mint_workflow(platform, settings).run(session_id)
    except PackBackendError as exc:
        print(f"[error] {exc.code}: {exc.message}")
        sys.exit(1)
    print(f"[mint] payment tx={result.transaction_id} mint request={result.request_id} state={result.request_state}")
    for token in result.minted_tokens:
        print(f"  - {token.id} {token.name}")


if __name__ == "__main__":
    main()
