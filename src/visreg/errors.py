from __future__ import annotations

from dataclasses import dataclass


@dataclass
class VisregError(Exception):
    code: str
    message: str
    hint: str

    def __str__(self) -> str:
        return self.message


class ConfigurationError(VisregError):
    """Fatal problem with the run setup, raised before any comparison starts."""
