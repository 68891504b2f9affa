"""Command line entry point: load, create and inspect tournaments."""

import argparse
import sys

from .api import BinaryBeast, create_cache_engine
from .config import Settings
from .models.mock_data import MockTransport
from .models.tournament import Tournament
from .utils import helpers
from .utils.logging import log, set_console_logging


def show_tournament(tournament: Tournament) -> None:
    """Print a tournament summary"""
    log(f"🏆 {tournament.get('title')} ({tournament.identity})")
    log(f"   Type: {tournament.get('type_name')}")
    log(f"   Elimination: {helpers.translate_elimination(tournament.get('elimination'))}")
    log(f"   Status: {tournament.get('status')}")
    log(f"   Next stage: {helpers.get_next_tournament_stage(tournament)}")

    teams = tournament.get("teams")
    log(f"   Teams: {len(teams)}")
    for team in teams:
        log(f"     - {team.get('display_name')} [{team.get('status_text')}]")


def run_commands(client: BinaryBeast, args: argparse.Namespace) -> int:
    """Run the requested cache / tournament commands, returns an exit code"""
    if client.cache is not None:
        if args.clear_cache:
            client.cache.clear()
        if args.clear_expired:
            client.cache.clear_expired()
    elif args.clear_cache or args.clear_expired:
        log("⚠️  No cache configured, nothing to clear")

    if args.create:
        tournament = client.tournament()
        tournament.set("title", args.create)
        if tournament.save() is False:
            log(f"❌ Unable to create tournament: {tournament.error()}")
            return 1
        log(f"✅ Created tournament {tournament.identity}")
        show_tournament(tournament)

    if args.tournament:
        tournament = client.tournament()
        if tournament.load(args.tournament) is False:
            log(f"❌ Unable to load tournament {args.tournament}: {tournament.error()}")
            return 1
        show_tournament(tournament)

    return 0


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="BinaryBeast tournament client")
    parser.add_argument("--key", help="BinaryBeast API key")
    parser.add_argument("--demo", action="store_true", help="Run against demo data")
    parser.add_argument("--tournament", help="Load and show a tournament by id")
    parser.add_argument("--create", metavar="TITLE", help="Create a new tournament")
    parser.add_argument(
        "--cache-url",
        help="SQLAlchemy database URL for caching results (e.g. sqlite:///bb_cache.db)",
    )
    parser.add_argument("--ttl", type=int, help="Minutes to keep cached results")
    parser.add_argument(
        "--clear-cache", action="store_true", help="Delete all cached results"
    )
    parser.add_argument(
        "--clear-expired", action="store_true", help="Delete expired cached results"
    )

    args = parser.parse_args()
    set_console_logging(True)

    settings = Settings.from_env(
        api_key=args.key, cache_url=args.cache_url, cache_ttl=args.ttl
    )
    log(f"🔍 API Key: {'***' + settings.api_key[-4:] if settings.api_key else 'None'}")
    log(f"🔍 Cache: {settings.cache_url or 'disabled'}")

    engine = None
    if args.demo or not settings.api_key:
        log("🏆 Running in DEMO mode with mock data")
        log("   Use --key (or BINARYBEAST_API_KEY) for real data")
        client = BinaryBeast(MockTransport(seed=True))
        if not args.tournament and not args.create:
            args.tournament = "xDEMO1"
    else:
        engine = create_cache_engine(settings)
        client = BinaryBeast.from_settings(settings, engine)

    try:
        exit_code = run_commands(client, args)
    finally:
        if engine is not None:
            engine.dispose()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
