from __future__ import annotations

"""Local persistence of session credentials and last-used form values.

The file uses the `.properties` layout written by the desktop tool, so a file
saved by either side can be read by the other. Persistence is best-effort:
read failures look like an empty store and write failures are reported in a
`SaveOutcome` instead of being raised.
"""

import contextlib
import logging
import os
import tempfile
import time

from .models import Credentials, SaveOutcome, StoredState

logger = logging.getLogger(__name__)

KEY_PROBLEM = "problem"
KEY_TOP_MODULE = "topModule"
KEY_EMAIL = "email"
KEY_TOKEN = "token"
KEY_EXPIRATION = "expiration"

_FILE_HEADER = "Jutge Credentials"

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_SEPARATORS = "=:"


def _logical_lines(text: str) -> list[str]:
    """Join continuation lines (odd trailing backslashes) into logical lines."""
    lines: list[str] = []
    pending: str | None = None
    for physical in text.splitlines():
        stripped = physical.lstrip(" \t\f")
        if pending is None:
            if not stripped or stripped[0] in "#!":
                continue
            current = stripped
        else:
            current = pending + stripped

        trailing = len(current) - len(current.rstrip("\\"))
        if trailing % 2 == 1:
            pending = current[:-1]
            continue
        pending = None
        lines.append(current)
    if pending is not None:
        lines.append(pending)
    return lines


def _unescape(text: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char != "\\" or index + 1 >= len(text):
            out.append(char)
            index += 1
            continue
        nxt = text[index + 1]
        if nxt == "u" and index + 6 <= len(text):
            try:
                out.append(chr(int(text[index + 2 : index + 6], 16)))
                index += 6
                continue
            except ValueError:
                pass
        out.append(_ESCAPES.get(nxt, nxt))
        index += 2
    joined = "".join(out)
    # \uXXXX pairs may encode characters outside the BMP as surrogates.
    try:
        return joined.encode("utf-16", "surrogatepass").decode("utf-16")
    except UnicodeDecodeError:
        return joined


def _split_entry(line: str) -> tuple[str, str]:
    """Split a logical line into raw key and raw value (still escaped)."""
    index = 0
    while index < len(line):
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in _SEPARATORS or char in " \t\f":
            break
        index += 1
    key = line[:index]
    rest = line[index:].lstrip(" \t\f")
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(" \t\f")
    return key, rest


def parse_properties(text: str) -> dict[str, str]:
    """Parse `.properties` content into a flat dictionary."""
    entries: dict[str, str] = {}
    for line in _logical_lines(text):
        raw_key, raw_value = _split_entry(line)
        key = _unescape(raw_key)
        if key:
            entries[key] = _unescape(raw_value)
    return entries


def _escape(text: str, *, is_key: bool) -> str:
    out: list[str] = []
    for position, char in enumerate(text):
        if char == "\\":
            out.append("\\\\")
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\t":
            out.append("\\t")
        elif char == "\f":
            out.append("\\f")
        elif char in "=:#!":
            out.append("\\" + char)
        elif char == " " and (is_key or position == 0):
            out.append("\\ ")
        elif ord(char) < 0x20 or ord(char) > 0x7E:
            encoded = char.encode("utf-16-be", "surrogatepass")
            for offset in range(0, len(encoded), 2):
                unit = int.from_bytes(encoded[offset : offset + 2], "big")
                out.append("\\u%04X" % unit)
        else:
            out.append(char)
    return "".join(out)


def format_properties(entries: dict[str, str], comment: str | None = None) -> str:
    """Render entries in `.properties` syntax, one `key=value` per line."""
    lines: list[str] = []
    if comment:
        lines.append("#" + comment)
    lines.append("#" + time.strftime("%a %b %d %H:%M:%S %Z %Y"))
    for key, value in entries.items():
        lines.append(f"{_escape(key, is_key=True)}={_escape(value, is_key=False)}")
    return "\n".join(lines) + "\n"


def _write_file(path: str, text: str) -> None:
    """Replace `path` in one step with owner-only permissions."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".credentials-", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(text)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


class CredentialStore:
    """Load and save `StoredState` to a local properties file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> StoredState:
        """Read stored state; absent file, keys or read errors yield empty values."""
        if not os.path.exists(self.path):
            logger.debug("no credential file at %s", self.path)
            return StoredState()

        try:
            with open(self.path, "rb") as fp:
                raw = fp.read()
        except OSError as exc:
            logger.warning("could not read credential file %s: %s", self.path, exc)
            return StoredState()

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("latin-1")
        entries = parse_properties(text)

        email = entries.get(KEY_EMAIL, "")
        token = entries.get(KEY_TOKEN, "")
        expiration = entries.get(KEY_EXPIRATION, "")
        credentials = None
        if email and token:
            credentials = Credentials(
                email=email,
                token=token,
                token_expiration=expiration or None,
            )
        return StoredState(
            credentials=credentials,
            problem=entries.get(KEY_PROBLEM, ""),
            top_module=entries.get(KEY_TOP_MODULE, ""),
        )

    def save(self, state: StoredState, persist_identity: bool) -> SaveOutcome:
        """
        Overwrite the credential file with `state`.

        Identity fields are written only when `persist_identity` is true;
        problem and top module are always written.
        """
        entries: dict[str, str] = {
            KEY_PROBLEM: state.problem,
            KEY_TOP_MODULE: state.top_module,
        }
        creds = state.credentials
        if persist_identity and creds is not None and creds.email and creds.token:
            entries[KEY_EMAIL] = creds.email
            entries[KEY_TOKEN] = creds.token
            if creds.token_expiration:
                entries[KEY_EXPIRATION] = creds.token_expiration

        try:
            _write_file(self.path, format_properties(entries, _FILE_HEADER))
        except OSError as exc:
            logger.warning("could not save credentials to %s: %s", self.path, exc)
            return SaveOutcome(path=self.path, persisted=False, error=str(exc))

        logger.debug(
            "saved credential file %s (identity %s)",
            self.path,
            "included" if KEY_TOKEN in entries else "omitted",
        )
        return SaveOutcome(path=self.path, persisted=True)

    def clear_identity(self) -> SaveOutcome:
        """Rewrite the file keeping only the last-used problem and module."""
        current = self.load()
        return self.save(
            StoredState(problem=current.problem, top_module=current.top_module),
            persist_identity=False,
        )
