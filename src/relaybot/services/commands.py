"""Static bot commands."""

from __future__ import annotations

from dataclasses import dataclass

GREETING_COMMANDS: dict[str, str] = {
    "start": "Start the bot",
    "help": "Display this help message",
}


def parse_command(text: str) -> str | None:
    """Return the lower-cased command name of ``/name[@bot] args``, if any."""
    stripped = text.strip()
    if not stripped.startswith("/"):
        return None
    head = stripped[1:].split(maxsplit=1)[0] if len(stripped) > 1 else ""
    name = head.split("@", 1)[0].lower()
    return name or None


@dataclass(frozen=True)
class CommandHandler:
    """Answer ``/start`` and ``/help`` with the configured greeting."""

    greeting: str

    def handle(self, command: str) -> str | None:
        """Return the reply for a command, or None for commands the bot does not know."""
        name = parse_command(command) if command.startswith("/") else command.lower()
        if name in GREETING_COMMANDS:
            return self.greeting
        return None
