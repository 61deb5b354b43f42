"""
Dendron Diagnostics Reporter

Every failure path reports a diagnostic and returns a failure Result.

Severity:
- WARNING: recoverable data-quality issue (empty salt, missing factor)
- FATAL: programmer misuse (invalid engine name, missing engine configuration)

Usage:
    return (fatal("empty mold", ConfigurationError, engine=self.name)
            .remind("cannot load engine")
            .fail())

    warning("empty salt", engine=self.name).remind("data conflict may arise").silence().prompt()
"""

from enum import Enum
from typing import Any, Dict, Optional, Type

from dendron import config
from dendron.logging import getLogger
from .errors import DendronError, Result

log = getLogger()


class Severity(str, Enum):
    """Diagnostic severity classes"""
    WARNING = "warning"
    FATAL = "fatal"


class Diagnostic:
    """A single reportable issue with chainable emission controls."""

    def __init__(self, severity: Severity, message: str,
                 errorType: Type[DendronError] = DendronError, **context: Any):
        self.severity = severity
        self.message = message
        self.errorType = errorType
        self.context: Dict[str, Any] = context
        self.reminder: Optional[str] = None
        self.silenced = False
        self.prompted = False

    def remind(self, reminder: str) -> 'Diagnostic':
        """Attach the consequence shown next to the message."""
        self.reminder = reminder
        return self

    def silence(self) -> 'Diagnostic':
        """Mark as non-throwing even under strictDiagnostics."""
        self.silenced = True
        return self

    def prompt(self) -> 'Diagnostic':
        """Emit the diagnostic once."""
        if self.prompted:
            return self
        self.prompted = True

        fields = dict(self.context)
        if self.reminder:
            fields['remind'] = self.reminder

        if self.severity == Severity.FATAL:
            log.error(self.message, **fields)
            if config.getSetting('strictDiagnostics') and not self.silenced:
                raise self.toError()
        else:
            log.warning(self.message, **fields)

        return self

    def toError(self) -> DendronError:
        message = f"{self.message}: {self.reminder}" if self.reminder else self.message
        return self.errorType(message, **self.context)

    def fail(self) -> Result:
        """Emit and forward a failure Result carrying the typed error."""
        self.prompt()
        return Result.failure(self.toError())


def warning(message: str, errorType: Type[DendronError] = DendronError, **context: Any) -> Diagnostic:
    return Diagnostic(Severity.WARNING, message, errorType, **context)


def fatal(message: str, errorType: Type[DendronError] = DendronError, **context: Any) -> Diagnostic:
    return Diagnostic(Severity.FATAL, message, errorType, **context)
