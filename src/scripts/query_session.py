#!/usr/bin/env python3
"""
Query the game backend and ledger for session data.

Usage:
    python scripts/query_session.py --games
    python scripts/query_session.py --session <session_id>
    python scripts/query_session.py --history [N] [--game dice]
    python scripts/query_session.py --tx <transaction_ref>

GAME_API_TOKEN supplies the bearer token for authenticated endpoints.
"""

import argparse
import asyncio
import logging
import os
import sys

from config import ConfigError, config
from errors import GameApiError, LedgerRpcError
from gameapi.client import GameApiClient
from gameapi.protocol import GameSessionProtocol
from ledger.rpc import LedgerRpcClient
from models.api import SessionSnapshot
from services.logger import setup_logging
from utils.decimal_utils import format_amount, format_multiplier

logger = logging.getLogger(__name__)


def build_protocol() -> GameSessionProtocol:
    """Protocol bound to GAME_API_URL with the GAME_API_TOKEN bearer token."""
    client = GameApiClient.from_config(config.BACKEND, auth_token=os.getenv("GAME_API_TOKEN"))
    return GameSessionProtocol(client)


def format_snapshot(snapshot: SessionSnapshot) -> str:
    symbol = config.TOKEN["symbol"]
    bet = format_amount(snapshot.bet_amount, symbol) if snapshot.bet_amount is not None else "N/A"
    result = snapshot.game_result()
    if result is not None:
        outcome = (
            f"{'WIN' if result.is_win else 'LOSS'} "
            f"{format_multiplier(result.multiplier)} "
            f"payout {format_amount(result.payout, symbol)}"
        )
    else:
        outcome = "-"
    return (
        f"{snapshot.session_id:<26} {snapshot.game_type or 'N/A':<16} "
        f"{snapshot.status:<12} {bet:>18}  {outcome}"
    )


async def query_games() -> int:
    """Print supported games and their bet bounds."""
    try:
        games = await build_protocol().supported_games()
    except GameApiError as e:
        print(f"Error fetching supported games: {e}", file=sys.stderr)
        return 1

    print(f"\n{'Game':<18} {'Min Bet':>14} {'Max Bet':>14} {'Multiplier':>12} {'Edge':>8}")
    print("-" * 70)
    for game in games:
        cfg = game.config
        print(
            f"{game.game_type:<18} {cfg.min_bet:>14} {cfg.max_bet:>14} "
            f"{format_multiplier(cfg.base_multiplier):>12} {cfg.house_edge:>8}"
        )
    print()
    return 0


async def query_session(session_id: str) -> int:
    """Print one session's snapshot."""
    try:
        snapshot = await build_protocol().fetch_session(session_id)
    except GameApiError as e:
        print(f"Error fetching session {session_id}: {e}", file=sys.stderr)
        return 1

    print(f"\nSession: {snapshot.session_id}")
    print("-" * 80)
    print(format_snapshot(snapshot))
    print(f"Created: {snapshot.created_at or 'N/A'}  Updated: {snapshot.updated_at or 'N/A'}")
    if snapshot.game_state is not None:
        print(f"State:   {snapshot.game_state}")
    print()
    return 0


async def query_history(limit: int, game_kind: str | None) -> int:
    """Print the most recent sessions."""
    try:
        sessions = await build_protocol().history(game_kind=game_kind, limit=limit)
    except (GameApiError, ValueError) as e:
        print(f"Error fetching history: {e}", file=sys.stderr)
        return 1

    if not sessions:
        print("No sessions found")
        return 0

    print(f"\nMost Recent {len(sessions)} Sessions")
    print("-" * 100)
    for snapshot in sessions:
        print(format_snapshot(snapshot))
    print()
    return 0


async def query_transaction(transaction_ref: str) -> int:
    """Print a deposit transaction's finality status."""
    ledger = LedgerRpcClient.from_config(config.LEDGER)
    try:
        status = await ledger.get_transaction_status(transaction_ref)
    except LedgerRpcError as e:
        print(f"Error querying transaction: {e}", file=sys.stderr)
        return 1

    print(f"\nTransaction: {transaction_ref}")
    print(f"Status:      {status.confirmation_status or 'unknown'}")
    print(f"Included:    {status.included} (commitment: {ledger.commitment})")
    if status.execution_error is not None:
        print(f"Error:       {status.execution_error}")
    print()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the script"""
    parser = argparse.ArgumentParser(
        description="Query game sessions and deposit transactions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List supported games
  %(prog)s --games

  # Show 20 most recent dice sessions
  %(prog)s --history 20 --game dice

  # Query specific session
  %(prog)s --session 665f1c2a9b1e4c0012345678

  # Check a deposit's finality
  %(prog)s --tx 5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb
        """,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--games", action="store_true", help="List supported games")
    group.add_argument(
        "--session", type=str, metavar="SESSION_ID", help="Fetch a specific session"
    )
    group.add_argument(
        "--history",
        type=int,
        metavar="N",
        nargs="?",
        const=10,
        help="Show N most recent sessions (default: 10)",
    )
    group.add_argument("--tx", type=str, metavar="REF", help="Check a deposit transaction")
    parser.add_argument("--game", type=str, help="Filter history by game type")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    try:
        config.validate()
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    setup_logging({"console_level": "DEBUG" if args.verbose else "WARNING"})

    if args.games:
        return asyncio.run(query_games())
    if args.session:
        return asyncio.run(query_session(args.session))
    if args.history is not None:
        return asyncio.run(query_history(args.history, args.game))
    return asyncio.run(query_transaction(args.tx))


if __name__ == "__main__":
    sys.exit(main())
