"""Map target triples onto npm platform fields."""

from __future__ import annotations

from dataclasses import dataclass

# Rust architecture -> npm `cpu`
ARCHITECTURES = {
    "x86_64": "x64",
    "i686": "ia32",
    "aarch64": "arm64",
    "armv7": "arm",
    "arm": "arm",
    "riscv64gc": "riscv64",
    "powerpc64le": "ppc64",
    "s390x": "s390x",
}

# Triple fragment -> npm `os`
SYSTEMS = (
    ("windows", "win32"),
    ("darwin", "darwin"),
    ("linux", "linux"),
    ("android", "android"),
    ("freebsd", "freebsd"),
)


@dataclass(frozen=True)
class Platform:
    """npm view of a target triple."""

    os: str
    cpu: str
    abi: str | None = None

    @property
    def libc(self) -> str | None:
        """npm `libc` value, only meaningful on Linux."""
        if self.os != "linux" or not self.abi:
            return None
        return "musl" if self.abi.startswith("musl") else "glibc"

    @property
    def suffix(self) -> str:
        """Platform string such as linux-x64-gnu or darwin-arm64."""
        parts = [self.os, self.cpu]
        if self.abi:
            parts.append(self.abi)
        return "-".join(parts)

    @property
    def executable_extension(self) -> str:
        return ".exe" if self.os == "win32" else ""


def describe_platform(triple: str) -> Platform:
    """Describe a target triple.

    Raises:
        ValueError: If the triple is malformed or its architecture
            or operating system is unknown
    """
    parts = triple.split("-")
    if len(parts) < 3 or not all(parts):
        raise ValueError(f"malformed target triple '{triple}'")

    cpu = ARCHITECTURES.get(parts[0])
    if cpu is None:
        raise ValueError(f"unknown architecture '{parts[0]}' in '{triple}'")

    system = next(
        (npm_os for fragment, npm_os in SYSTEMS if fragment in parts[1:]),
        None,
    )
    if system is None:
        raise ValueError(f"unknown operating system in '{triple}'")

    # Darwin triples carry no ABI component
    abi = None
    if system != "darwin" and len(parts) >= 4:
        abi = parts[-1]
    return Platform(os=system, cpu=cpu, abi=abi)
