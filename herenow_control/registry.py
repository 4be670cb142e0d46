"""
Command Registry
================

Bounded Context: Which control commands exist and who handles them.

Commands are registered explicitly by the service at setup; anything not
registered is rejected with CommandNotAvailableError before a handler
runs. Names are lowercase snake_case (the control plane lowercases
incoming names).

Threading: registration is guarded by a lock; handlers run on whatever
thread calls execute() (the control plane's dispatcher decides).
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set


class CommandNotAvailableError(Exception):
    """Raised when executing a command nobody registered."""
    pass


@dataclass(frozen=True)
class RegisteredCommand:
    name: str
    handler: Callable
    description: str


class CommandRegistry:
    """
    Name -> handler table for control commands.

    A handler receives the decoded command payload when one is passed to
    execute(), and its return value becomes the reply ``result``.

    Example:
        registry = CommandRegistry()
        registry.register('cancel', service.cancel, "Cancel a scheduled notification")
        registry.execute('cancel', {'command': 'cancel', 'notification_id': 'n1'})
    """

    def __init__(self):
        self._commands: Dict[str, RegisteredCommand] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: Callable, description: str) -> None:
        """
        Raises:
            ValueError: If the name is empty, not lowercase, contains spaces,
                or is already taken
        """
        if not command or command != command.lower() or ' ' in command:
            raise ValueError(f"Invalid command name: {command!r}")

        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")
            self._commands[command] = RegisteredCommand(command, handler, description)

    def execute(self, command: str, command_data: Optional[dict] = None) -> Any:
        """
        Run the handler for command.

        Raises:
            CommandNotAvailableError: If command is not registered
        """
        entry = self._commands.get(command)
        if entry is None:
            available = ', '.join(sorted(self._commands))
            raise CommandNotAvailableError(
                f"Command '{command}' not available. Available commands: {available}"
            )
        if command_data is None:
            return entry.handler()
        return entry.handler(command_data)

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        return set(self._commands)

    def get_help(self) -> Dict[str, str]:
        """Command name -> description, for the ``status`` reply and the CLI."""
        return {name: entry.description for name, entry in self._commands.items()}

    def count(self) -> int:
        return len(self._commands)
