"""
Error severities shared by every stage of the Tala pipeline.

Fatal errors are raised as `FatalError` and travel up to the ScriptRunner,
which turns them into an error ExecutionResult; the front end then aborts
the process. Reported errors do not interrupt evaluation: they are written
with an ``ERROR:`` prefix and recorded on a `Diagnostics` sink.
"""
import sys
from typing import Any, Dict, List, NoReturn, Optional, TextIO


class TalaError(Exception):
    """Base class for errors raised by the Tala interpreter."""
    pass


class FatalError(TalaError):
    """An unrecoverable error. `loc` holds the source position when known."""
    def __init__(self, message: str, loc: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        return self.message


class ExitRequest(TalaError):
    """Raised by the `exit` builtin to unwind to the front end."""
    def __init__(self, code: int = 0):
        super().__init__(f"exit {code}")
        self.code = code


def fatal(message: str, loc: Optional[Dict[str, Any]] = None) -> NoReturn:
    raise FatalError(message, loc)


class Diagnostics:
    """Collects reported (non-fatal) errors and echoes them to a stream."""
    def __init__(self, stream: Optional[TextIO] = None):
        self.reported: List[str] = []
        self._stream = stream

    def report(self, message: str):
        self.reported.append(message)
        stream = self._stream if self._stream is not None else sys.stderr
        print(f"ERROR: {message}", file=stream)

    def clear(self):
        self.reported = []
