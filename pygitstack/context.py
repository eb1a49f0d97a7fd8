"""Output context passed explicitly through the engine and the CLI."""

from dataclasses import dataclass, field
import logging
from typing import IO, List, Optional
import sys

logger = logging.getLogger(__name__)


@dataclass
class OutputContext:
    """Owns the user facing output buffer and the debug flag.

    Lines are buffered so tests can inspect them; when ``stream`` is set
    they are echoed as they arrive.
    """
    debug_enabled: bool = False
    stream: Optional[IO[str]] = None
    lines: List[str] = field(default_factory=list)

    @classmethod
    def for_terminal(cls, debug_enabled: bool = False) -> 'OutputContext':
        return cls(debug_enabled=debug_enabled, stream=sys.stdout)

    def output(self, text: str) -> None:
        self.lines.append(text)
        if self.stream is not None:
            print(text, file=self.stream, flush=True)

    def newline(self) -> None:
        self.output("")

    def error(self, text: str) -> None:
        logger.error(text)
        self.output(text)

    def debug(self, text: str) -> None:
        """Only shown when the debug flag is set; always logged."""
        logger.debug(text)
        if self.debug_enabled:
            self.output(text)

    def is_debug(self) -> bool:
        return self.debug_enabled
