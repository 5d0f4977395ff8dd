"""Entry point for running the CLI as a module."""

import argparse
import asyncio
import sys

from .copilot_cli import main


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Interactive CLI for the Sensihi copilot API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Server host (default: localhost)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Server port (default: 8080)",
    )
    parser.add_argument(
        "--api-path",
        type=str,
        default="/copilot",
        help="API path (default: /copilot)",
    )
    parser.add_argument(
        "--page",
        type=str,
        default=None,
        help="Page path sent along with every message",
    )
    parser.add_argument(
        "--persona",
        type=str,
        choices=["founder", "technical", "sales"],
        default=None,
        help="Tone hint sent along with every message",
    )
    parser.add_argument(
        "--client-ip",
        type=str,
        default=None,
        help="Value sent as X-Forwarded-For",
    )
    parser.add_argument(
        "--show-lead",
        action="store_true",
        help="Print the lead score of every answer",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (shows response headers)",
    )

    return parser.parse_args()


def cli_entry() -> None:
    """CLI entry point."""
    args = parse_args()

    try:
        asyncio.run(
            main(
                host=args.host,
                port=args.port,
                api_path=args.api_path,
                page=args.page,
                persona=args.persona,
                client_ip=args.client_ip,
                debug=args.debug,
                show_lead=args.show_lead,
            )
        )
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    cli_entry()
