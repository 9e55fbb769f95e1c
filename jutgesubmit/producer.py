from __future__ import annotations

"""Artifact producer boundary and a file-backed Verilog implementation.

The pipeline only relies on `ArtifactProducer` and `ExportSettings`; a host
design tool plugs its own model validator and exporter in through them.
"""

import os
import re
from typing import Any, Protocol

from .errors import ExportError, ValidationError

_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_MODULE_RE = re.compile(r"\b(?:module|macromodule)\s+([A-Za-z_][A-Za-z0-9_$]*)")
_ENDMODULE_RE = re.compile(r"\bendmodule\b")


class ArtifactProducer(Protocol):
    """Validates a design and renders it to a textual artifact."""

    def validate(self, design: Any) -> None:
        """Raise `ValidationError` when the design is inconsistent."""

    def export(self, design: Any, destination_path: str) -> None:
        """Write the artifact to `destination_path` or raise `ExportError`."""


class ExportSettings(Protocol):
    """The host tool's export-directory preference."""

    def get_export_directory(self) -> str | None: ...

    def set_export_directory(self, path: str | None) -> None: ...


class InMemorySettings:
    """ExportSettings kept in process memory."""

    def __init__(self, export_directory: str | None = None) -> None:
        self.export_directory = export_directory

    def get_export_directory(self) -> str | None:
        return self.export_directory

    def set_export_directory(self, path: str | None) -> None:
        self.export_directory = path


def _strip_verilog_comments(source: str) -> str:
    return _LINE_COMMENT_RE.sub("", _BLOCK_COMMENT_RE.sub("", source))


class VerilogFileProducer:
    """ArtifactProducer whose design is the path of a Verilog source file."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def _read(self, design: Any) -> str:
        with open(os.fspath(design), "r", encoding=self.encoding) as fp:
            return fp.read()

    def validate(self, design: Any) -> None:
        try:
            source = self._read(design)
        except (OSError, UnicodeDecodeError) as exc:
            raise ValidationError(f"cannot read design {design}: {exc}") from exc

        if not source.strip():
            raise ValidationError(f"design {design} is empty")
        stripped = _strip_verilog_comments(source)
        modules = _MODULE_RE.findall(stripped)
        if not modules:
            raise ValidationError(f"design {design} declares no module")
        endings = len(_ENDMODULE_RE.findall(stripped))
        if endings != len(modules):
            raise ValidationError(
                "design %s has %d module declarations but %d endmodule"
                % (design, len(modules), endings)
            )

    def export(self, design: Any, destination_path: str) -> None:
        try:
            source = self._read(design)
            with open(destination_path, "w", encoding="utf-8") as fp:
                fp.write(source)
        except (OSError, UnicodeDecodeError) as exc:
            raise ExportError(str(exc)) from exc
