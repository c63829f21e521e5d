"""
CommandRegistry - named remote commands for a listener session

Bounded Context: Command registration and dispatch
Responsibilities:
  - Register commands with handlers and help text
  - Reject unknown commands before anything runs
  - Introspection (available_commands, get_help)

Threading: register() takes a lock; lookups read a dict snapshot
"""

import threading
from typing import Any, Callable, Dict, Optional, Set


class CommandNotAvailableError(Exception):
    """Raised when a command name has no registered handler"""
    pass


class CommandRegistry:
    """
    Registry of control commands.

    Handlers receive the full command payload and may return a reply
    dict, which the control plane publishes on the status topic.

    Example:
        registry = CommandRegistry()
        registry.register('start_recording', session.start_recording_command,
                          "Start recording the listener's path")

        try:
            reply = registry.execute('start_recording', {'composition_id': 'c1'})
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, Callable[[Dict[str, Any]], Any]] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: Callable[[Dict[str, Any]], Any], description: str) -> None:
        """
        Register ``handler`` under ``command``.

        Raises:
            ValueError: If the name is empty or already registered
        """
        name = command.strip().lower()
        if not name:
            raise ValueError("Command name cannot be empty")

        with self._lock:
            if name in self._commands:
                raise ValueError(f"Command '{name}' already registered")
            self._commands[name] = handler
            self._descriptions[name] = description

    def unregister(self, command: str) -> None:
        with self._lock:
            self._commands.pop(command, None)
            self._descriptions.pop(command, None)

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a registered command.

        Returns:
            Whatever the handler returned

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )
        return handler(command_data or {})

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        return dict(self._descriptions)

    def __len__(self) -> int:
        return len(self._commands)
