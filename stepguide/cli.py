#!/usr/bin/env python3
"""
stepguide - Step-by-Step Coding Tutor CLI

Usage:
    stepguide                                   # Interactive REPL
    stepguide "reverse a linked list"           # Start a tutorial right away
    stepguide --stuck "my loop never ends"      # Ask for help right away
    stepguide -f solution.py "reverse a list"   # Send your code with each step
"""

import logging
import argparse

from rich.logging import RichHandler

from .config import tutorials_enabled, prompt_for_api_token
from .entitlement import EntitlementGate, fetch_user_tier
from .tutoring import TutorialSession
from .workspace import ActiveFile


def setup_logging(verbose: bool = False):
    """Route library logging through rich"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='stepguide - Step-by-step guidance for coding problems',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stepguide --setup                             # Configure API token (first time)
  stepguide                                     # Start the interactive REPL
  stepguide "reverse a linked list"             # Start a tutorial for a problem
  stepguide --stuck "my recursion never ends"   # Get help right away
  stepguide -f main.py "parse a CSV file"       # Include your code in each request
        """
    )

    parser.add_argument('problem', nargs='?', help='Problem you want help with')
    parser.add_argument('--stuck', action='store_true',
                        help='Ask for help right away instead of a step-by-step tutorial')
    parser.add_argument('-f', '--file', metavar='PATH',
                        help='File you are working on (sent with every step request)')
    parser.add_argument('--api-url', metavar='URL',
                        help='Tutorial service URL (default: from config)')
    parser.add_argument('--max-steps', type=int, metavar='N',
                        help='Maximum number of steps per tutorial')
    parser.add_argument('--setup', action='store_true',
                        help='Configure stepguide (set API token)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show debug logging')
    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.setup:
        prompt_for_api_token()
        return

    if args.max_steps is not None and args.max_steps < 1:
        parser.error('--max-steps must be at least 1')

    from .repl import TutorialREPL

    workspace = ActiveFile(args.file)
    workspace.start()

    try:
        session = TutorialSession.from_config(
            api_url=args.api_url,
            workspace=workspace,
            max_steps=args.max_steps,
        )
        try:
            # Tier lookups share the stream client and its credentials
            client = session.transport.client
            gate = EntitlementGate(
                tier_lookup=lambda: fetch_user_tier(client),
                enabled=tutorials_enabled(),
            )
            repl = TutorialREPL(session, gate=gate)
            repl.run(problem=args.problem, stuck=args.stuck)
        finally:
            session.close()
    finally:
        workspace.stop()


if __name__ == "__main__":
    main()
