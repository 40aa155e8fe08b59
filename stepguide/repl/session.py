#!/usr/bin/env python3
"""
Interactive REPL for step-by-step tutorials.
"""

from typing import Callable, Dict, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from ..config import get_config_dir
from ..entitlement import EntitlementGate, SHOW_PLUS_DIALOG
from ..tutoring import TutorialSession, TutorialState, TargetField, FALLBACK_MESSAGE
from .commands import get_command_help, resolve_command

FIELD_TITLES = {
    TargetField.STEP: 'Step {index}',
    TargetField.STEP_HINT: 'Hint for step {index}',
    TargetField.STEP_INSTRUCTION_HINT: 'Instructions for step {index}',
}

FIELD_STYLES = {
    TargetField.STEP: 'blue',
    TargetField.STEP_HINT: 'yellow',
    TargetField.STEP_INSTRUCTION_HINT: 'cyan',
}

# Commands that need a tutorial to be reachable
GATED_COMMANDS = {'start', 'stuck', 'next', 'hint', 'explain', 'restart', 'new'}


class TutorialREPL:
    """Interactive REPL driving a TutorialSession"""

    def __init__(
        self,
        session: TutorialSession,
        gate: EntitlementGate = None,
        console: Console = None,
    ):
        self.session = session
        self.gate = gate
        self.console = console or Console()
        if self.gate is not None and self.gate.dispatch is None:
            self.gate.dispatch = self._on_ui_event

        self.handlers: Dict[str, Callable[[str], Optional[str]]] = {
            'start': self._cmd_start,
            'stuck': self._cmd_stuck,
            'next': self._cmd_next,
            'hint': self._cmd_hint,
            'explain': self._cmd_explain,
            'restart': self._cmd_restart,
            'new': self._cmd_new,
            'status': self._cmd_status,
            'upgrade': self._cmd_upgrade,
            'help': self._cmd_help,
            'exit': lambda _: 'exit',
        }

    def run(self, problem: str = None, stuck: bool = False):
        """Main REPL loop"""
        self._print_welcome()

        if problem and self._tutorials_reachable():
            self._submit(problem, stuck=stuck)

        history_path = get_config_dir() / 'repl_history'
        prompt_session = PromptSession(
            history=FileHistory(str(history_path)),
            auto_suggest=AutoSuggestFromHistory(),
        )

        while True:
            try:
                user_input = prompt_session.prompt(self._get_prompt())

                if not user_input.strip():
                    continue

                result = self.process_command(user_input.strip())

                if result == 'exit':
                    break

            except KeyboardInterrupt:
                self.console.print("\n[dim]Use 'exit' to quit[/dim]")
            except EOFError:
                break

        self.console.print("[dim]Goodbye![/dim]")

    def _print_welcome(self):
        """Print welcome message"""
        welcome = """
[bold blue]stepguide[/bold blue] - Step-by-Step Coding Tutor

Describe what you are trying to code and get guidance one step at a time.

[dim]Commands: start, stuck, next, hint, explain, restart, new, help
Type 'help' for all commands or 'help <cmd>' for details.[/dim]
"""
        self.console.print(Panel(welcome, border_style="blue"))

        status = self.gate.status() if self.gate is not None else 'available'
        if status == 'disabled':
            self.console.print("[yellow]Step-by-step tutorials are currently unavailable.[/yellow]")
        elif status == 'locked':
            self.console.print("[yellow]Step-by-step tutorials are available for Plus users.[/yellow]")
            self.console.print("[dim]Type 'upgrade' to learn more.[/dim]")

    def _get_prompt(self) -> str:
        """Generate context-aware prompt"""
        state = self.session.state
        if not state.is_active():
            return 'stepguide> '
        suffix = ' done' if state.is_last_step else ''
        return f'stepguide (step {state.step_index}/{state.max_steps}{suffix})> '

    def _tutorials_reachable(self) -> bool:
        if self.gate is None:
            return True
        status = self.gate.status()
        if status == 'disabled':
            self.console.print("[yellow]Step-by-step tutorials are currently unavailable.[/yellow]")
            return False
        if status == 'locked':
            self.console.print("[yellow]Step-by-step tutorials are available for Plus users.[/yellow]")
            self.console.print("[dim]Type 'upgrade' to learn more.[/dim]")
            return False
        return True

    def process_command(self, user_input: str) -> Optional[str]:
        """Process user input and dispatch to handlers"""
        parts = user_input.split(maxsplit=1)
        command = resolve_command(parts[0])
        args = parts[1] if len(parts) > 1 else ''

        handler = self.handlers.get(command)
        if handler is None:
            self.console.print(f"[red]Unknown command: {command}[/red]")
            self.console.print("[dim]Type 'help' for commands.[/dim]")
            return None

        if command in GATED_COMMANDS and not self._tutorials_reachable():
            return None

        return handler(args)

    # === Rendering ===

    def _render_field(self, state: TutorialState, target: TargetField):
        text = state.get_field(target)
        title = FIELD_TITLES[target].format(index=state.step_index)
        style = 'red' if text == FALLBACK_MESSAGE else FIELD_STYLES[target]
        body = Markdown(text) if text else '[dim]Loading...[/dim]'
        return Panel(body, title=title, border_style=style)

    def _stream(self, action: Callable, target: TargetField):
        """Run a transition and render its target field live as it streams"""
        with Live(
            self._render_field(self.session.state, target),
            console=self.console,
            refresh_per_second=12,
        ) as live:
            unsubscribe = self.session.subscribe(
                lambda state: live.update(self._render_field(state, target))
            )
            try:
                step_fetch = action()
            except KeyboardInterrupt:
                self.session.cancel()
                self.console.print("[yellow]Stream interrupted.[/yellow]")
                return None
            finally:
                unsubscribe()

        if self.session.state.is_last_step:
            self.console.print("[bold green]Tutorial complete![/bold green] "
                               "[dim]Use 'restart' or 'new' to keep going.[/dim]")
        return step_fetch

    # === Command Handlers ===

    def _submit(self, problem: str, stuck: bool = False):
        if not problem.strip():
            self.console.print("[red]Describe the problem you want help with.[/red]")
            return
        self.session.set_draft(problem)
        self._stream(lambda: self.session.submit_problem(stuck=stuck), TargetField.STEP)

    def _cmd_start(self, args: str) -> None:
        """Start a tutorial for a problem"""
        if not args:
            self.console.print("[red]Usage: start <problem>[/red]")
            return
        self._submit(args)

    def _cmd_stuck(self, args: str) -> None:
        """Ask for help on a problem right away"""
        if not args:
            self.console.print("[red]Usage: stuck <problem>[/red]")
            return
        self._submit(args, stuck=True)

    def _require_session(self) -> bool:
        if not self.session.state.is_active():
            self.console.print("[yellow]No tutorial in progress. Use 'start <problem>' first.[/yellow]")
            return False
        return True

    def _require_step(self) -> bool:
        if not self._require_session():
            return False
        if not self.session.state.has_step():
            self.console.print("[yellow]No step loaded yet. Try 'restart'.[/yellow]")
            return False
        return True

    def _cmd_next(self, args: str) -> None:
        """Go to the next step"""
        if not self._require_session():
            return
        state = self.session.state
        if state.is_last_step:
            self.console.print("[dim]This was the last step. Use 'restart' or 'new'.[/dim]")
            return
        if state.step_index >= state.max_steps:
            self.session.next()
            self.console.print(f"[dim]Reached the last step ({state.max_steps}).[/dim]")
            return
        self._stream(self.session.next, TargetField.STEP)

    def _cmd_hint(self, args: str) -> None:
        """Get a hint for the current step"""
        if self._require_step():
            self._stream(self.session.get_hint, TargetField.STEP_HINT)

    def _cmd_explain(self, args: str) -> None:
        """Get clarified instructions for the current step"""
        if self._require_step():
            self._stream(self.session.get_instruction_hint, TargetField.STEP_INSTRUCTION_HINT)

    def _cmd_restart(self, args: str) -> None:
        """Restart the tutorial"""
        if self._require_session():
            self._stream(self.session.restart, TargetField.STEP)

    def _cmd_new(self, args: str) -> None:
        """Return to the intake form"""
        self.session.reset()
        self.console.print("[green]Ready for a new problem.[/green] [dim]Use 'start <problem>'.[/dim]")

    def _cmd_status(self, args: str) -> None:
        """Show current tutorial status"""
        state = self.session.state
        if not state.is_active():
            self.console.print("[yellow]No tutorial in progress. Use 'start <problem>'.[/yellow]")
            return

        table = Table(title="Tutorial Status", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("Problem", state.problem)
        table.add_row("Step", f"{state.step_index} / {state.max_steps}")
        table.add_row("Finished", "yes" if state.is_last_step else "no")
        table.add_row("Conversation", state.conversation_id or '-')
        table.add_row("Streaming", "yes" if self.session.is_streaming() else "no")
        self.console.print(table)

    def _cmd_upgrade(self, args: str) -> None:
        """Ask the UI to show the Plus dialog"""
        if self.gate is None:
            self.console.print("[dim]No subscription check configured.[/dim]")
            return
        self.gate.request_upgrade()

    def _cmd_help(self, args: str) -> None:
        """Show help"""
        self.console.print(get_command_help(args if args else None))

    def _on_ui_event(self, event: str, detail: Dict):
        if event == SHOW_PLUS_DIALOG:
            self.console.print(Panel(
                "Plus unlocks step-by-step tutorials: guidance one step at a time,\n"
                "hints when you are stuck and clarified instructions for every step.",
                title="stepguide Plus",
                border_style="magenta",
            ))
