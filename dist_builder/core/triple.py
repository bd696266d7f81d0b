"""
Target triples — parse rustc-style ``arch[-vendor]-os[-abi]`` strings.

Responsibilities:
  - Split a triple into (arch, vendor, os, abi) without ever failing.
  - Classify the platform (bit width, endianness, OS family, libc flavour).
  - Provide the tables of triples the tool knows about.

Unrecognised tokens become ``Other(token)``; the literal ``unknown`` maps
to the ``UNKNOWN`` member of the matching enum.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Dict, Optional, Tuple, Type, TypeVar, Union


@dataclass(frozen=True)
class Other:
    """A token that none of the literal tables recognise."""

    value: str

    def __str__(self) -> str:
        return self.value


# ── Field enums ──────────────────────────────────────────────────────────────

@unique
class Arch(str, Enum):
    I586 = "i586"
    I686 = "i686"
    X86_64 = "x86_64"
    AARCH64 = "aarch64"
    ARMV7 = "armv7"
    ARM = "arm"
    POWERPC = "powerpc"
    POWERPC64 = "powerpc64"
    POWERPC64LE = "powerpc64le"
    S390X = "s390x"
    RISCV64GC = "riscv64gc"
    LOONGARCH64 = "loongarch64"
    SPARC64 = "sparc64"
    SPARCV9 = "sparcv9"
    WASM32 = "wasm32"
    UNKNOWN = "unknown"


@unique
class Vendor(str, Enum):
    APPLE = "apple"
    PC = "pc"
    SUN = "sun"
    UNKNOWN = "unknown"


@unique
class Os(str, Enum):
    LINUX = "linux"
    WINDOWS = "windows"
    DARWIN = "darwin"
    FREEBSD = "freebsd"
    NETBSD = "netbsd"
    ILLUMOS = "illumos"
    IOS = "ios"
    WATCHOS = "watchos"
    TVOS = "tvos"
    FUCHSIA = "fuchsia"
    ANDROID = "android"
    WASI = "wasi"
    SOLARIS = "solaris"
    UNKNOWN = "unknown"


@unique
class Abi(str, Enum):
    GNU = "gnu"
    GNUEABI = "gnueabi"
    GNUEABIHF = "gnueabihf"
    MUSL = "musl"
    MUSLEABI = "musleabi"
    MUSLEABIHF = "musleabihf"
    MSVC = "msvc"
    ANDROID = "android"
    UNKNOWN = "unknown"


@unique
class Endianness(str, Enum):
    LITTLE = "little"
    BIG = "big"


ArchField = Union[Arch, Other]
VendorField = Union[Vendor, Other]
OsField = Union[Os, Other]
AbiField = Union[Abi, Other]

E = TypeVar("E", bound=Enum)


def _lookup(enum_cls: Type[E], token: str) -> Union[E, Other]:
    try:
        return enum_cls(token)
    except ValueError:
        return Other(token)


# ── Architecture facts ───────────────────────────────────────────────────────

_BIT_WIDTH: Dict[Arch, int] = {
    Arch.I586: 32,
    Arch.I686: 32,
    Arch.X86_64: 64,
    Arch.AARCH64: 64,
    Arch.ARMV7: 32,
    Arch.ARM: 32,
    Arch.POWERPC: 32,
    Arch.POWERPC64: 64,
    Arch.POWERPC64LE: 64,
    Arch.S390X: 64,
    Arch.RISCV64GC: 64,
    Arch.LOONGARCH64: 64,
    Arch.SPARC64: 64,
    Arch.SPARCV9: 64,
    Arch.WASM32: 32,
}

_ENDIANNESS: Dict[Arch, Endianness] = {
    Arch.I586: Endianness.LITTLE,
    Arch.I686: Endianness.LITTLE,
    Arch.X86_64: Endianness.LITTLE,
    Arch.AARCH64: Endianness.LITTLE,
    Arch.ARMV7: Endianness.LITTLE,
    Arch.ARM: Endianness.LITTLE,
    Arch.POWERPC: Endianness.BIG,
    Arch.POWERPC64: Endianness.BIG,
    Arch.POWERPC64LE: Endianness.LITTLE,
    Arch.S390X: Endianness.BIG,
    Arch.RISCV64GC: Endianness.LITTLE,
    Arch.LOONGARCH64: Endianness.LITTLE,
    Arch.SPARC64: Endianness.BIG,
    Arch.SPARCV9: Endianness.BIG,
    Arch.WASM32: Endianness.LITTLE,
}


def bit_width(arch: ArchField) -> Optional[int]:
    """Bit width of *arch*, or None when it is not known."""
    return _BIT_WIDTH.get(arch) if isinstance(arch, Arch) else None


def endianness(arch: ArchField) -> Optional[Endianness]:
    """Endianness of *arch*, or None when it is not known."""
    return _ENDIANNESS.get(arch) if isinstance(arch, Arch) else None


# ── Parsed triple ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TargetTriple:
    """A target triple: the original string plus its parsed components."""

    original: str
    arch: ArchField
    vendor: VendorField
    os: OsField
    abi: AbiField

    def __str__(self) -> str:
        return self.original

    @property
    def is_64bit(self) -> bool:
        return bit_width(self.arch) == 64

    @property
    def is_32bit(self) -> bool:
        return bit_width(self.arch) == 32

    @property
    def is_windows(self) -> bool:
        return self.os == Os.WINDOWS

    @property
    def is_mac(self) -> bool:
        return self.os == Os.DARWIN

    @property
    def is_linux(self) -> bool:
        return self.os == Os.LINUX

    @property
    def is_gnu(self) -> bool:
        return self.abi in (Abi.GNU, Abi.GNUEABI, Abi.GNUEABIHF)

    @property
    def is_musl(self) -> bool:
        return self.abi in (Abi.MUSL, Abi.MUSLEABI, Abi.MUSLEABIHF)

    @property
    def is_msvc(self) -> bool:
        return self.abi == Abi.MSVC

    @property
    def is_ios(self) -> bool:
        return self.os == Os.IOS

    @property
    def is_android(self) -> bool:
        # `aarch64-linux-android` keeps "linux" as the os; android is the abi
        return self.os == Os.ANDROID or self.abi == Abi.ANDROID

    @property
    def is_wasm(self) -> bool:
        return self.arch == Arch.WASM32

    @property
    def is_bsd(self) -> bool:
        return self.os in (Os.FREEBSD, Os.NETBSD)

    @property
    def is_big_endian(self) -> bool:
        return endianness(self.arch) == Endianness.BIG

    @property
    def is_little_endian(self) -> bool:
        return endianness(self.arch) == Endianness.LITTLE


def parse_triple(triple: str) -> TargetTriple:
    """
    Parse *triple* into a ``TargetTriple``.  Never raises.

    Triples have at most four components; anything past the third ``-``
    belongs to the abi.
    """
    tokens = triple.split("-", 3)

    if len(tokens) == 2:
        # wasm32-wasi, aarch64-fuchsia
        arch, os_ = tokens
        return TargetTriple(
            original=triple,
            arch=_lookup(Arch, arch),
            vendor=Vendor.UNKNOWN,
            os=_lookup(Os, os_),
            abi=Abi.UNKNOWN,
        )

    if len(tokens) == 3:
        a, b, c = tokens
        if b == "linux":
            # i686-linux-android: [arch, os, abi]
            return TargetTriple(
                original=triple,
                arch=_lookup(Arch, a),
                vendor=Vendor.UNKNOWN,
                os=_lookup(Os, b),
                abi=_lookup(Abi, c),
            )
        # aarch64-apple-darwin: [arch, vendor, os]
        return TargetTriple(
            original=triple,
            arch=_lookup(Arch, a),
            vendor=_lookup(Vendor, b),
            os=_lookup(Os, c),
            abi=Abi.UNKNOWN,
        )

    if len(tokens) == 4:
        arch, vendor, os_, abi = tokens
        return TargetTriple(
            original=triple,
            arch=_lookup(Arch, arch),
            vendor=_lookup(Vendor, vendor),
            os=_lookup(Os, os_),
            abi=_lookup(Abi, abi),
        )

    return TargetTriple(
        original=triple,
        arch=Arch.UNKNOWN,
        vendor=Vendor.UNKNOWN,
        os=Os.UNKNOWN,
        abi=Abi.UNKNOWN,
    )


# ── Known triples ────────────────────────────────────────────────────────────

KNOWN_WINDOWS_TARGETS: Tuple[str, ...] = (
    "i686-pc-windows-msvc",
    "x86_64-pc-windows-msvc",
    "aarch64-pc-windows-msvc",
    "i686-pc-windows-gnu",
    "x86_64-pc-windows-gnu",
    "aarch64-pc-windows-gnu",
)

KNOWN_MAC_TARGETS: Tuple[str, ...] = (
    "i686-apple-darwin",
    "x86_64-apple-darwin",
    "aarch64-apple-darwin",
)

KNOWN_LINUX_GNU_TARGETS: Tuple[str, ...] = (
    "i686-unknown-linux-gnu",
    "x86_64-unknown-linux-gnu",
    "aarch64-unknown-linux-gnu",
    "armv7-unknown-linux-gnueabihf",
    "arm-unknown-linux-gnueabi",
    "arm-unknown-linux-gnueabihf",
    "powerpc-unknown-linux-gnu",
    "powerpc64-unknown-linux-gnu",
    "powerpc64le-unknown-linux-gnu",
    "s390x-unknown-linux-gnu",
    "riscv64gc-unknown-linux-gnu",
    "loongarch64-unknown-linux-gnu",
    "sparc64-unknown-linux-gnu",
)

KNOWN_LINUX_MUSL_TARGETS: Tuple[str, ...] = (
    "i686-unknown-linux-musl",
    "x86_64-unknown-linux-musl",
    "aarch64-unknown-linux-musl",
    "armv7-unknown-linux-musleabihf",
    "arm-unknown-linux-musleabi",
    "arm-unknown-linux-musleabihf",
    "powerpc-unknown-linux-musl",
    "powerpc64-unknown-linux-musl",
    "powerpc64le-unknown-linux-musl",
    "s390x-unknown-linux-musl",
    "riscv64gc-unknown-linux-musl",
    "loongarch64-unknown-linux-musl",
    "sparc64-unknown-linux-musl",
)

KNOWN_LINUX_TARGETS: Tuple[str, ...] = KNOWN_LINUX_GNU_TARGETS + KNOWN_LINUX_MUSL_TARGETS

KNOWN_OTHER_TARGETS: Tuple[str, ...] = (
    "x86_64-unknown-freebsd",
    "x86_64-unknown-illumos",
    "x86_64-unknown-netbsd",
    "aarch64-apple-ios",
    "aarch64-unknown-fuchsia",
    "aarch64-linux-android",
    "x86_64-linux-android",
    "wasm32-wasi",
    "wasm32-unknown-unknown",
    "sparcv9-sun-solaris",
    "x86_64-pc-solaris",
)

KNOWN_TARGET_TRIPLES: Tuple[str, ...] = (
    KNOWN_WINDOWS_TARGETS
    + KNOWN_MAC_TARGETS
    + KNOWN_LINUX_GNU_TARGETS
    + KNOWN_LINUX_MUSL_TARGETS
    + KNOWN_OTHER_TARGETS
)
