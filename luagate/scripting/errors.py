"""Script error taxonomy and the codec for the engine's single-string error channel.

Lua can only propagate one string per fault. ``custom_error`` packs a message,
an optional status code and an optional content type into that string, and
``decode`` turns whatever comes out of an engine run back into a typed error.

Known limitation: a user message that itself contains ``SEPARATOR``, or that
starts with the engine position marker, is split at the wrong place.
"""

import re
from typing import TYPE_CHECKING, Any, Optional

from luagate.scripting.sourcemap import SourceLineError, SourceMap

if TYPE_CHECKING:
    from luagate.scripting.session import ScriptSession

# Chunk name given to every piece of code loaded in a session. Lua prefixes
# faults with "<CHUNK_NAME>:<global line>: ".
CHUNK_NAME = "script"

SEPARATOR = " || "

# Status carried by custom_error(msg): an internal, non-HTTP failure.
INTERNAL_STATUS = -1

DEFAULT_STATUS = 500

_POSITION_RE = re.compile(r"^" + re.escape(CHUNK_NAME) + r":(\d+): ?(.*)$", re.DOTALL)


class ScriptError(Exception):
    """Base class for every error surfaced by a script session."""


class ArgumentError(ScriptError):
    """A script called a binding with the wrong number or type of arguments."""

    def __init__(self, message: str = "need arguments"):
        super().__init__(message)


class EngineError(ScriptError):
    """Raw, undecoded fault string produced by the Lua engine."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(raw)


class PositionedFault(ScriptError):
    """Syntax or runtime fault raised by the engine itself."""

    def __init__(self, message: str, file: Optional[str] = None, line: Optional[int] = None):
        self.message = message
        self.file = file
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.file is None:
            return self.message
        return f"{self.message} ({self.file}:L{self.line})"


class UserError(ScriptError):
    """Error raised by a script through custom_error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InternalError(UserError):
    """custom_error(msg): not tied to an HTTP status."""


class HTTPError(UserError):
    """custom_error(msg, code)"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class HTTPErrorWithEncoding(HTTPError):
    """custom_error(msg, code, content_type)"""

    def __init__(self, message: str, status_code: int, encoding: str):
        super().__init__(message, status_code)
        self.encoding = encoding


class UnknownSourceError(ScriptError):
    """A configured source has no backing content."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"lua: unable to load required source {source}")


class HTTPResponseError(Exception):
    """Failed backend response, as handed to scripts by the host pipeline."""

    def __init__(self, status_code: int, body: str, encoding: str = ""):
        self.status_code = status_code
        self.body = body
        self.encoding = encoding
        super().__init__(body)


class NamedHTTPResponseError(HTTPResponseError):
    """HTTPResponseError tagged with the name of the backend that produced it."""

    def __init__(self, name: str, status_code: int, body: str, encoding: str = ""):
        super().__init__(status_code, body, encoding)
        self.name = name


def _to_text(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_status(value: Any) -> int:
    if isinstance(value, bool):
        raise ArgumentError("status code must be a number")
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(float(value))
    except (TypeError, ValueError):
        raise ArgumentError("status code must be a number") from None


def encode_custom_error(*args: Any) -> str:
    """Build the string raised by ``custom_error(message[, code[, content_type]])``."""
    if not args:
        raise ArgumentError()
    message = _to_text(args[0])
    if len(args) == 1:
        return f"{message}{SEPARATOR}{INTERNAL_STATUS}"
    status = _to_status(args[1])
    if len(args) == 2:
        return f"{message}{SEPARATOR}{status}"
    return f"{message}{SEPARATOR}{status}{SEPARATOR}{_to_text(args[2])}"


def decode(err: BaseException, source_map: Optional[SourceMap] = None) -> BaseException:
    """Turn an error coming out of an engine run into a typed script error.

    Errors that did not come from the engine are returned unchanged. Engine
    faults without a position prefix are returned as a bare PositionedFault.
    """
    if not isinstance(err, EngineError):
        return err

    match = _POSITION_RE.match(err.raw)
    if match is None:
        return PositionedFault(err.raw)

    line = int(match.group(1))
    remainder = match.group(2)
    parts = remainder.split(SEPARATOR)

    if len(parts) == 1:
        return _positioned(remainder, line, source_map)

    message = parts[0]
    try:
        status = int(parts[1])
    except ValueError:
        status = DEFAULT_STATUS

    if status == INTERNAL_STATUS:
        return InternalError(message)
    if len(parts) == 2:
        return HTTPError(message, status)
    return HTTPErrorWithEncoding(message, status, parts[2])


def _positioned(message: str, line: int, source_map: Optional[SourceMap]) -> PositionedFault:
    if source_map is None:
        return PositionedFault(message)
    try:
        file, relative_line = source_map.resolve(line)
    except SourceLineError:
        return PositionedFault(message)
    return PositionedFault(message, file, relative_line)


_CUSTOM_ERROR_FACTORY = """
function(encode)
    local error = error
    return function(...)
        error(encode(...), 2)
    end
end
"""


def register_errors(session: "ScriptSession") -> None:
    """Expose ``custom_error`` to scripts."""
    factory = session.lua.eval(_CUSTOM_ERROR_FACTORY)
    session.set_global("custom_error", factory(encode_custom_error))
