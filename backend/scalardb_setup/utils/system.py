"""Host inspection helpers: OS, CPU architecture, distro family, ports, passwords."""

import platform
import secrets
import socket
import string
from pathlib import Path

from scalardb_setup.core.errors import InstallerError

PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"

_DEBIAN_IDS = {"ubuntu", "debian", "pop", "linuxmint", "elementary", "zorin"}
_FEDORA_IDS = {"fedora", "rhel", "centos", "rocky", "alma", "amzn"}
_ARCH_IDS = {"arch", "manjaro", "endeavouros"}


def current_platform() -> str | None:
    """Return ``mac``, ``linux`` or ``windows`` (None for anything else)."""
    return {
        "Darwin": "mac",
        "Linux": "linux",
        "Windows": "windows",
    }.get(platform.system())


def current_arch() -> str:
    """Map the machine type to the naming used by JDK download APIs."""
    machine = platform.machine().lower()
    if machine in ("arm64", "aarch64"):
        return "aarch64"
    if machine in ("x86_64", "amd64"):
        return "x64"
    return machine


def detect_linux_distro(os_release: Path = Path("/etc/os-release")) -> str | None:
    """Parse /etc/os-release to determine the Linux distro family."""
    if not os_release.exists():
        return None

    info: dict[str, str] = {}
    for line in os_release.read_text().splitlines():
        line = line.strip()
        if "=" in line:
            key, value = line.split("=", 1)
            info[key] = value.strip('"')

    distro_id = info.get("ID", "").lower()
    id_like = info.get("ID_LIKE", "").lower()

    if distro_id in _DEBIAN_IDS:
        return "debian"
    if distro_id in _FEDORA_IDS:
        return "fedora"
    if distro_id in _ARCH_IDS:
        return "arch"
    if any(d in id_like for d in ("debian", "ubuntu")):
        return "debian"
    if any(d in id_like for d in ("fedora", "rhel")):
        return "fedora"
    if "arch" in id_like:
        return "arch"
    return None


def is_port_available(port: int, host: str = "localhost") -> bool:
    """Check if a port is available for binding."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((host, port))
            return True
    except OSError:
        return False


def find_available_port(preferred: int, attempts: int = 10) -> int:
    """Return the first free port in ``preferred .. preferred + attempts - 1``."""
    for port in range(preferred, preferred + attempts):
        if is_port_available(port):
            return port
    raise InstallerError(
        f"No available port found in range {preferred}-{preferred + attempts - 1}"
    )


def generate_secure_password(length: int = 16) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
