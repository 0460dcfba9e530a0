from dataclasses import dataclass
import uuid


@dataclass(frozen=True)
class TerminalId:
    """
    Value Object representing a unique terminal session identifier.
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("Terminal ID cannot be empty")

    @classmethod
    def generate(cls) -> "TerminalId":
        return cls(str(uuid.uuid4()))

    def __str__(self):
        return self.value
