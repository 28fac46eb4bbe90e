"""Non-fatal problems found while decoding, encoding or assembling."""

import logging
from dataclasses import dataclass
from typing import Literal


Severity = Literal["info", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.DEBUG,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A warning/error record carried next to a codec or assembler result."""

    severity: Severity
    code: str
    message: str
    line: int | None = None    # 1-based source line, assembler only

    def __str__(self) -> str:
        if self.line is not None:
            return f"Line {self.line}: {self.message}"
        return self.message


def report(
    sink: list[Diagnostic],
    logger: logging.Logger,
    code: str,
    message: str,
    *,
    severity: Severity = "warning",
    line: int | None = None,
) -> Diagnostic:
    """Append a diagnostic to `sink` and mirror it to `logger`."""
    diagnostic = Diagnostic(severity=severity, code=code, message=message, line=line)
    sink.append(diagnostic)
    logger.log(_LOG_LEVELS[severity], str(diagnostic))
    return diagnostic
