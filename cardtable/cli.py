"""
Card Table CLI - Command-line interface for the engine.

Usage:
    cardtable parse <file>                 Print the commands in an AI message as JSON
    cardtable map [--layer N] [--seed S]   Generate a floor map and print a summary
    cardtable serve [--host H] [--port P]  Run the HTTP API
"""

import argparse
from collections import Counter
import json
import random
import sys

from .config import configure_logging


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Card Table - AI game-master table engine",
        prog="cardtable",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    parse_parser = subparsers.add_parser("parse", help="Parse commands from an AI message")
    parse_parser.add_argument("file", help="Path to a text file ('-' for stdin)")

    map_parser = subparsers.add_parser("map", help="Generate a floor map")
    map_parser.add_argument("--layer", type=int, default=0, help="Floor index (0-based)")
    map_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    map_parser.add_argument("--json", action="store_true", help="Print the full map document")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.command == "parse":
        cmd_parse(args)
    elif args.command == "map":
        cmd_map(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_parse(args):
    """Print parsed commands."""
    from .engine_core.parser import parse_commands

    try:
        if args.file == "-":
            text = sys.stdin.read()
        else:
            with open(args.file, "r", encoding="utf-8") as f:
                text = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.file}")
        sys.exit(1)

    commands = parse_commands(text)
    output = []
    for command in commands:
        entry = command.to_dict()
        entry["kind"] = command.kind.name if command.kind else None
        output.append(entry)
    print(json.dumps(output, ensure_ascii=False, indent=2))


def cmd_map(args):
    """Generate a map and summarize it."""
    from .dungeon import generate_map_data

    map_data = generate_map_data(layer=args.layer, rng=random.Random(args.seed))
    if args.json:
        print(json.dumps(map_data, ensure_ascii=False, indent=2))
        return

    nodes = map_data["nodes"]
    rows = max(n["row"] for n in nodes)
    print(f"Floor {args.layer + 1}: {len(nodes)} nodes over {rows + 1} rows, {len(map_data['paths'])} paths")
    for node_type, count in sorted(Counter(n["type"] for n in nodes).items()):
        print(f"  {node_type:<12} {count}")
    secrets = map_data["secret_nodes"]
    if secrets:
        print("Secrets:")
        for secret in secrets:
            print(f"  {secret['id']} ({secret['type']}) behind {secret['attached_to_node_id']}")


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn
    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
