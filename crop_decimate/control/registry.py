"""
Command Registry
================

Registry explícito de comandos de servicio (status, stats, stop).

Las image requests NO pasan por acá: tienen su propio topic y su propio
parser (ver control/requests.py). El registry cubre solo operación del
servicio.
"""
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Set
import logging

logger = logging.getLogger(__name__)


class CommandNotAvailableError(Exception):
    """Comando no registrado en el servicio."""
    pass


@dataclass(frozen=True)
class RegisteredCommand:
    handler: Callable[[], Any]
    description: str = ""


class CommandRegistry:
    """
    Registry de comandos de servicio.

    Usage:
        registry = CommandRegistry()
        registry.register('status', controller.publish_status, "Publica estado")
        registry.register('stop', controller.stop, "Detiene el servicio")

        try:
            registry.execute('stop')
        except CommandNotAvailableError as e:
            logger.warning(str(e))
    """

    def __init__(self):
        self._commands: Dict[str, RegisteredCommand] = {}
        self._lock = Lock()

    def register(self, command: str, handler: Callable[[], Any], description: str = ""):
        """
        Registra un comando (case-insensitive).

        Note:
            Si comando ya existe, se sobrescribe con warning.
        """
        name = command.lower()
        with self._lock:
            if name in self._commands:
                logger.warning(f"⚠️ Comando '{name}' ya registrado, sobrescribiendo")
            self._commands[name] = RegisteredCommand(handler, description)
        logger.debug(f"📝 Comando registrado: '{name}' - {description}")

    def execute(self, command: str) -> Any:
        """
        Ejecuta un comando.

        Returns:
            Resultado del handler (o None)

        Raises:
            CommandNotAvailableError: Si comando no está registrado
        """
        name = command.lower()
        with self._lock:
            entry = self._commands.get(name)
            available = sorted(self._commands)

        if entry is None:
            raise CommandNotAvailableError(
                f"Command '{name}' not available. "
                f"Available commands: {', '.join(available)}"
            )

        logger.debug(f"⚙️ Ejecutando comando: '{name}'")
        return entry.handler()

    def is_available(self, command: str) -> bool:
        with self._lock:
            return command.lower() in self._commands

    @property
    def available_commands(self) -> Set[str]:
        with self._lock:
            return set(self._commands)

    def get_help(self) -> Dict[str, str]:
        """Dict[comando, descripción]"""
        with self._lock:
            return {name: cmd.description for name, cmd in self._commands.items()}

    def __repr__(self) -> str:
        cmds = ', '.join(sorted(self.available_commands))
        return f"CommandRegistry({len(self._commands)} commands: {cmds})"
