"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from aias.domain.ports.shell_port import ShellPort, ShellProcess
from aias.domain.ports.command_port import CommandPort, CommandResult

__all__ = [
    "ShellPort",
    "ShellProcess",
    "CommandPort",
    "CommandResult",
]
