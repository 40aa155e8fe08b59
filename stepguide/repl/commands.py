#!/usr/bin/env python3
"""
Command definitions for the tutorial REPL.
"""

COMMANDS = {
    # Starting a tutorial
    'start': {
        'help': 'Start a step-by-step tutorial for a problem',
        'usage': 'start <problem>',
        'examples': ['start reverse a linked list', 'start parse a CSV file'],
    },
    'stuck': {
        'help': 'Describe a problem you are stuck on and get help right away',
        'usage': 'stuck <problem>',
        'examples': ['stuck my recursion never terminates'],
    },

    # During a tutorial
    'next': {
        'help': 'Go to the next step',
        'usage': 'next',
        'examples': ['next'],
    },
    'hint': {
        'help': 'Get a hint for the current step',
        'usage': 'hint',
        'examples': ['hint'],
    },
    'explain': {
        'help': 'Get help with the instructions required for this step',
        'usage': 'explain',
        'examples': ['explain'],
    },
    'restart': {
        'help': 'Restart the tutorial from step 1',
        'usage': 'restart',
        'examples': ['restart'],
    },
    'new': {
        'help': 'Start working on a new problem',
        'usage': 'new',
        'examples': ['new'],
    },
    'status': {
        'help': 'Show the current tutorial status',
        'usage': 'status',
        'examples': ['status'],
    },

    # General
    'upgrade': {
        'help': 'Learn more about Plus',
        'usage': 'upgrade',
        'examples': ['upgrade'],
    },
    'help': {
        'help': 'Show available commands',
        'usage': 'help [command]',
        'examples': ['help', 'help hint'],
    },
    'exit': {
        'help': 'Exit the REPL',
        'usage': 'exit',
        'examples': ['exit', 'quit'],
    },
}

ALIASES = {
    'quit': 'exit',
    'q': 'exit',
    'n': 'next',
    '?': 'help',
    'reset': 'new',
}


def resolve_command(name: str) -> str:
    """Map aliases to their command name"""
    name = name.lower()
    return ALIASES.get(name, name)


def get_command_help(command: str = None) -> str:
    """Get help text for a command or all commands"""
    if command:
        command = resolve_command(command)
        if command in COMMANDS:
            cmd = COMMANDS[command]
            lines = [
                f"[bold]{command}[/bold] - {cmd['help']}",
                f"  Usage: {cmd['usage']}",
                "  Examples:",
            ]
            for ex in cmd['examples']:
                lines.append(f"    {ex}")
            return '\n'.join(lines)
        return f"Unknown command: {command}"

    lines = ["[bold]Available Commands:[/bold]\n"]
    for name, cmd in COMMANDS.items():
        lines.append(f"  [cyan]{name:<10}[/cyan] {cmd['help']}")
    lines.append("\nType 'help <command>' for details.")
    return '\n'.join(lines)
