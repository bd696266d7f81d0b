"""
Errors — typed failures of the dist pipeline with stable error codes.

Every fatal condition surfaces as a ``DistError`` subclass.  Causes are
chained with ``raise ... from exc`` so the original OSError / ELFError stays
reachable.  Unparsable compiler messages are not errors: they are logged
and skipped by the build driver.
"""
from __future__ import annotations

from collections.abc import Mapping
from enum import Enum, unique
from pathlib import Path
from typing import List, Optional, Sequence, Tuple


@unique
class ErrorCode(str, Enum):
    MISSING_BINARY = "E_MISSING_BINARY"
    COMPILER_INVOCATION = "E_COMPILER_INVOCATION"
    LINKAGE_ANALYSIS = "E_LINKAGE_ANALYSIS"
    FILESYSTEM = "E_FILESYSTEM"
    ARCHIVE_WRITE = "E_ARCHIVE_WRITE"
    CONFIG = "E_CONFIG"
    INIT = "E_INIT"


class DistError(Exception):
    """Base error carrying a code, an optional hint and string context."""

    code: str
    hint: Optional[str]
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        for k, v in self.context.items():
            if v:
                parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class MissingBinariesError(DistError):
    """A build finished without producing one or more expected executables."""

    def __init__(self, missing: Sequence[Tuple[str, str]]) -> None:
        self.missing: List[Tuple[str, str]] = list(missing)
        pkg_name, bin_name = self.missing[0]
        listing = ", ".join(f"{b} ({p})" for p, b in self.missing)
        super().__init__(
            f"failed to find bin {bin_name} for {pkg_name}",
            code=ErrorCode.MISSING_BINARY,
            hint="check that cargo built every [[bin]] target of the workspace",
            context={"missing": listing},
        )

    @property
    def pkg_name(self) -> str:
        return self.missing[0][0]

    @property
    def bin_name(self) -> str:
        return self.missing[0][1]


class CompilerInvocationFailed(DistError):
    def __init__(self, message: str, *, command: Sequence[str] = (), returncode: Optional[int] = None) -> None:
        context = {"command": " ".join(command)}
        if returncode is not None:
            context["returncode"] = str(returncode)
        super().__init__(message, code=ErrorCode.COMPILER_INVOCATION, context=context)
        self.returncode = returncode


class LinkageAnalysisFailed(DistError):
    def __init__(self, message: str, *, path: Path | str) -> None:
        super().__init__(message, code=ErrorCode.LINKAGE_ANALYSIS, context={"path": str(path)})
        self.path = Path(path)


class FilesystemError(DistError):
    def __init__(self, message: str, *, path: Path | str) -> None:
        super().__init__(message, code=ErrorCode.FILESYSTEM, context={"path": str(path)})
        self.path = Path(path)


class ArchiveWriteFailed(DistError):
    def __init__(self, message: str, *, path: Path | str) -> None:
        super().__init__(message, code=ErrorCode.ARCHIVE_WRITE, context={"path": str(path)})
        self.path = Path(path)


class ConfigError(DistError):
    def __init__(self, message: str, *, hint: Optional[str] = None, path: Path | str | None = None) -> None:
        context = {"path": str(path)} if path is not None else None
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class InitError(DistError):
    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        context = {"path": str(path)} if path is not None else None
        super().__init__(message, code=ErrorCode.INIT, context=context)


__all__ = [
    "ArchiveWriteFailed",
    "CompilerInvocationFailed",
    "ConfigError",
    "DistError",
    "ErrorCode",
    "FilesystemError",
    "InitError",
    "LinkageAnalysisFailed",
    "MissingBinariesError",
]
