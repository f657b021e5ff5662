"""Crease CLI entry point."""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from crease import __version__
from crease.config import get_settings
from crease.database import close_db, init_models
from crease.engine import build_engine
from crease.errors import CreaseError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

SWEEPS = {
    "results": ("orchestrator", "run_result_sweep"),
    "winners": ("orchestrator", "run_winner_settlement_sweep"),
    "stale-fancy": ("safety_net", "void_stale_fancy_markets"),
    "stale-matches": ("safety_net", "void_stale_matches"),
}


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from crease.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


async def _with_engine(action):
    engine = build_engine(get_settings())
    try:
        result = await action(engine)
        await engine.broadcaster.drain()
        return result
    finally:
        await close_db()


def _print_response(response) -> None:
    mark = "✓" if response.success else "⚠"
    print(f"\n{mark} {response.message}")
    if response.data and response.data.get("failures"):
        print("\nFailures:")
        for failure in response.data["failures"]:
            print(f"  • {failure['bet_id']}: {failure['error']}")
    print()


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create database tables."""
    settings = get_settings()

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)

        async def run():
            try:
                await init_models()
            finally:
                await close_db()

        asyncio.run(run())
        print(f"\n✓ Database initialized: {settings.database_url}\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_sweep(args: argparse.Namespace) -> int:
    """Run one settlement sweep now."""
    _init_logfire()
    component, method = SWEEPS[args.name]

    try:
        print(f"\n=== Sweep: {args.name} ===\n")
        report = asyncio.run(
            _with_engine(lambda engine: getattr(getattr(engine, component), method)())
        )

        print(f"✓ Processed: {report.processed}")
        if report.errors:
            print(f"\nErrors ({len(report.errors)}):")
            for error in report.errors:
                print(f"  • {error}")
        print()
        return 0 if not report.errors else 2

    except Exception as e:
        logger.error(f"Sweep {args.name} failed: {e}", exc_info=True)
        print(f"\n❌ Sweep failed: {e}\n")
        return 1


def cmd_settle(args: argparse.Namespace) -> int:
    """Manually set a match winner and settle its bets."""
    try:
        response = asyncio.run(
            _with_engine(
                lambda engine: engine.admin.manual_settle(
                    args.match_id,
                    winner=args.winner,
                    win_type=args.win_type,
                    win_margin=args.win_margin,
                    settled_by=args.by,
                )
            )
        )
        _print_response(response)
        return 0 if response.success else 2

    except CreaseError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"\n❌ {args.command} failed: {e}\n")
        return 1


def cmd_void(args: argparse.Namespace) -> int:
    """Manually void a match and refund pending bets."""
    try:
        response = asyncio.run(
            _with_engine(lambda engine: engine.admin.manual_void(args.match_id, args.reason, args.by))
        )
        _print_response(response)
        return 0 if response.success else 2

    except CreaseError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"\n❌ {args.command} failed: {e}\n")
        return 1


def cmd_fancy_settle(args: argparse.Namespace) -> int:
    """Declare a fancy market result."""
    try:
        response = asyncio.run(
            _with_engine(
                lambda engine: engine.admin.manual_fancy_settle(
                    args.market_id, args.result, args.by
                )
            )
        )
        _print_response(response)
        return 0 if response.success else 2

    except CreaseError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"\n❌ {args.command} failed: {e}\n")
        return 1


def cmd_unsettled(args: argparse.Namespace) -> int:
    """List matches still awaiting settlement."""
    try:
        matches = asyncio.run(_with_engine(lambda engine: engine.admin.get_unsettled_summary()))
    except Exception as e:
        logger.error(f"Failed to load unsettled matches: {e}")
        print(f"\n❌ {e}\n")
        return 1

    print("\n=== Unsettled Matches ===\n")
    if not matches:
        print("  (None)\n")
        return 0

    for m in matches:
        print(f"  {m.name} [{m.status}]")
        print(f"    id: {m.id}")
        print(f"    winner: {m.match_winner or '-'}")
        print(f"    pending bets: {m.pending_bets}, open fancy markets: {m.unsettled_fancy_markets}")
    print()
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Start the API server with the settlement scheduler."""
    import uvicorn

    from crease.api.server import create_app

    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Crease Settlement Engine ===\n")
        print(f"Version: {__version__}")
        print(f"Database: {settings.database_url}")
        print(f"Listening: {settings.api.host}:{settings.api.port}\n")

        uvicorn.run(
            create_app(run_scheduler=not args.no_scheduler),
            host=settings.api.host,
            port=settings.api.port,
            log_level=settings.log_level.lower(),
        )
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Crease: settlement and result reconciliation for cricket markets",
        prog="python -m crease",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    run_parser = subparsers.add_parser("run", help="Start API server and scheduler")
    run_parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    run_parser.add_argument(
        "--no-scheduler", action="store_true", help="Serve the API without running sweeps"
    )
    run_parser.set_defaults(func=cmd_run)

    sweep_parser = subparsers.add_parser("sweep", help="Run one sweep immediately")
    sweep_parser.add_argument("name", choices=sorted(SWEEPS))
    sweep_parser.set_defaults(func=cmd_sweep)

    settle_parser = subparsers.add_parser("settle", help="Set a match winner and settle bets")
    settle_parser.add_argument("match_id", type=UUID)
    settle_parser.add_argument("winner", help="Team name or DRAW")
    settle_parser.add_argument("--win-type")
    settle_parser.add_argument("--win-margin")
    settle_parser.add_argument("--by", default="admin", help="Operator name")
    settle_parser.set_defaults(func=cmd_settle)

    void_parser = subparsers.add_parser("void", help="Void a match and refund bets")
    void_parser.add_argument("match_id", type=UUID)
    void_parser.add_argument("reason")
    void_parser.add_argument("--by", default="admin", help="Operator name")
    void_parser.set_defaults(func=cmd_void)

    fancy_parser = subparsers.add_parser("fancy-settle", help="Declare a fancy market result")
    fancy_parser.add_argument("market_id", type=UUID)
    fancy_parser.add_argument("result", type=_decimal)
    fancy_parser.add_argument("--by", default="admin", help="Operator name")
    fancy_parser.set_defaults(func=cmd_fancy_settle)

    unsettled_parser = subparsers.add_parser("unsettled", help="List unsettled matches")
    unsettled_parser.set_defaults(func=cmd_unsettled)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
