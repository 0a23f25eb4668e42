"""
Croupier CLI - Command-line interface for the sync engine.

Usage:
    croupier games                           List supported games
    croupier decode <game> <hex>             Decode a state blob
    croupier encode <game> <command> [...]   Encode a player command
    croupier frame <hex>                     Decode an event frame
    croupier serve [--host --port]           Run the HTTP surface
"""

import argparse
import sys

from .config import SyncConfig
from .logging_utils import setup_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Croupier - Casino session sync engine",
        prog="croupier",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("games", help="List supported games")

    # Decode command
    decode_parser = subparsers.add_parser("decode", help="Decode a state blob")
    decode_parser.add_argument("game", help="Game id or name (e.g. 3, craps)")
    decode_parser.add_argument("state", help="State blob as hex")

    # Encode command
    encode_parser = subparsers.add_parser("encode", help="Encode a player command")
    encode_parser.add_argument("game", help="Game id or name")
    encode_parser.add_argument("kind", help="Command kind (place_wager, advance, hit, hold, ...)")
    encode_parser.add_argument("--kind", dest="wager_kind", type=int, default=0, help="Wager kind")
    encode_parser.add_argument("--target", type=int, default=0, help="Wager target")
    encode_parser.add_argument("--amount", type=int, default=0, help="Wager, side-wager or odds amount")
    encode_parser.add_argument("--value", type=int, default=0, help="Hold mask, multiplier, rule or slot")

    # Frame command
    frame_parser = subparsers.add_parser("frame", help="Decode an event frame")
    frame_parser.add_argument("frame", help="Event frame as hex")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    setup_logging(args.verbose or SyncConfig.from_env().log_verbosity)

    if args.command == "games":
        return cmd_games(args)
    elif args.command == "decode":
        return cmd_decode(args)
    elif args.command == "encode":
        return cmd_encode(args)
    elif args.command == "frame":
        return cmd_frame(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 1


def _game(value: str):
    from .engine_core.state import GameType

    try:
        return GameType.parse(value)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def _hex(value: str):
    cleaned = "".join(value.split())
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError:
        print(f"Error: not valid hex: {value}", file=sys.stderr)
        return None


def cmd_games(args):
    """List games and the commands each accepts."""
    from .games import default_registry

    registry = default_registry()
    for game_type in registry.game_types:
        commands = ", ".join(k.value for k in registry.get(game_type).supported_commands())
        print(f"{int(game_type):>2}  {game_type.display_name:<18} {commands}")
    return 0


def cmd_decode(args):
    """Decode a state blob and print the snapshot."""
    from .engine_core.errors import DecodeError
    from .games import default_registry

    game_type = _game(args.game)
    data = _hex(args.state)
    if game_type is None or data is None:
        return 1

    try:
        snapshot = default_registry().decode_state(game_type, data)
    except DecodeError as e:
        print(f"Decode failed: {e}", file=sys.stderr)
        return 1

    version = f" v{snapshot.version}" if snapshot.version is not None else ""
    print(f"{game_type.display_name}{version} - {snapshot.stage.value}")
    for wager in snapshot.wagers:
        extra = f" +{wager.secondary_amount}" if wager.secondary_amount else ""
        print(f"  wager kind={wager.kind} target={wager.target} amount={wager.amount}{extra}")
    if snapshot.dice:
        print(f"  dice: {' '.join(str(d) for d in snapshot.dice)}")
    for name, cards in snapshot.card_groups().items():
        print(f"  {name}: {' '.join(str(c) for c in cards) or '-'}")
    for key, value in snapshot.display_fields().items():
        print(f"  {key}: {value}")
    return 0


def cmd_encode(args):
    """Encode one command and print the payload as hex."""
    from .engine_core.action import Command, CommandKind
    from .engine_core.errors import EncodeError
    from .engine_core.state import Wager
    from .games import default_registry

    game_type = _game(args.game)
    if game_type is None:
        return 1
    try:
        kind = CommandKind.parse(args.kind)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if kind == CommandKind.PLACE_WAGER:
        command = Command.place(Wager(kind=args.wager_kind, amount=args.amount, target=args.target))
    else:
        command = Command(kind=kind, amount=args.amount, value=args.value)

    try:
        payload = default_registry().encode_command(game_type, command)
    except EncodeError as e:
        print(f"Encode failed: {e}", file=sys.stderr)
        return 1
    print(payload.hex())
    return 0


def cmd_frame(args):
    """Decode a binary event frame."""
    from .engine_core.errors import DecodeError
    from .engine_core.events import SessionCompleted, SessionMoved, decode_event_frame

    data = _hex(args.frame)
    if data is None:
        return 1
    try:
        event = decode_event_frame(data)
    except DecodeError as e:
        print(f"Decode failed: {e}", file=sys.stderr)
        return 1

    if isinstance(event, SessionCompleted):
        print(
            f"completed session={event.session_id} payout={event.payout} "
            f"balance={event.final_balance} shielded={event.flags.shielded} doubled={event.flags.doubled}"
        )
    elif isinstance(event, SessionMoved):
        print(f"moved session={event.session_id} move={event.move_number} state={event.state.hex()}")
    else:
        print(
            f"started session={event.session_id} game={event.game_type.display_name} "
            f"bet={event.bet} state={event.state.hex()}"
        )
    return 0


def cmd_serve(args):
    """Run the API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn", file=sys.stderr)
        return 1

    from .api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info" if args.verbose else "warning")
    return 0


if __name__ == "__main__":
    sys.exit(main())
