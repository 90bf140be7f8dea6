"""Java detection and Eclipse Temurin JDK installation.

Detection parses ``java -version`` (printed on stderr). Installation downloads
the latest GA Temurin build for the host from the Adoptium API, extracts it
and exports JAVA_HOME for future shells.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from scalardb_setup.config import settings
from scalardb_setup.core.errors import (
    InstallerError,
    UnsupportedPlatformError,
    UnsupportedVersionError,
)
from scalardb_setup.utils.shell import run_command, which
from scalardb_setup.utils.system import current_arch, current_platform

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (8, 11, 17, 21)
ADOPTIUM_URL = (
    "https://api.adoptium.net/v3/binary/latest/{version}/ga/{os}/{arch}"
    "/jdk/hotspot/normal/eclipse?project=jdk"
)

_VERSION_RE = re.compile(r'version "(\d+)(?:\.(\d+))?')
_VENDOR_RE = re.compile(r"(openjdk|oracle|adoptium|temurin|zulu|corretto)", re.IGNORECASE)
_PROFILE_FILES = (".bashrc", ".zshrc", ".profile")


def parse_java_version(output: str) -> int | None:
    """Extract the major version; legacy ``1.8.0_xxx`` strings map to 8."""
    match = _VERSION_RE.search(output)
    if not match:
        return None
    major = int(match.group(1))
    if major == 1 and match.group(2):
        return int(match.group(2))
    return major


def parse_java_vendor(output: str) -> str:
    match = _VENDOR_RE.search(output)
    return match.group(1).lower() if match else "unknown"


def get_temurin_download_url(version: int, os_name: str, arch: str) -> str:
    return ADOPTIUM_URL.format(version=version, os=os_name, arch=arch)


class JavaInstaller:
    """Check for and install a JDK."""

    def __init__(self) -> None:
        self.platform = current_platform()
        self.arch = current_arch()

    def get_install_dir(self, version: int) -> Path:
        if self.platform == "windows":
            return Path("C:/Program Files/Java") / f"jdk-{version}"
        return Path("/usr/local/java") / f"jdk-{version}"

    async def check_java_version(self) -> dict[str, Any]:
        """Return ``{installed, version, vendor, home}`` for the java on PATH."""
        try:
            result = await run_command(["java", "-version"], timeout=30)
        except InstallerError as e:
            logger.debug("Java not detected: %s", e)
            return {"installed": False, "version": None, "vendor": None, "home": None}

        output = result.output
        return {
            "installed": True,
            "version": parse_java_version(output),
            "vendor": parse_java_vendor(output),
            "home": self._find_java_home(),
        }

    def _find_java_home(self) -> str | None:
        java_home = os.environ.get("JAVA_HOME")
        if java_home:
            return java_home

        java_path = which("java")
        if not java_path:
            return None
        # <home>/bin/java
        return str(Path(java_path).resolve().parent.parent)

    async def install_java(self, version: int = 17) -> dict[str, Any]:
        """Download, extract and register a Temurin JDK.

        Raises:
            UnsupportedVersionError: version is not one of 8, 11, 17, 21.
            UnsupportedPlatformError: the host OS has no Temurin build here.
        """
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersionError(
                f"Java version {version} is not supported. "
                f"Supported versions: {', '.join(str(v) for v in SUPPORTED_VERSIONS)}"
            )
        if self.platform is None:
            raise UnsupportedPlatformError("Java installation is not supported on this platform")

        install_dir = self.get_install_dir(version)
        url = get_temurin_download_url(version, self.platform, self.arch)
        archive = install_dir.parent / f"jdk-{version}.{'zip' if self.platform == 'windows' else 'tar.gz'}"

        try:
            install_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Downloading Temurin JDK %d from %s", version, url)
            await self._download(url, archive)
            await self._extract(archive, install_dir)
            archive.unlink(missing_ok=True)

            java_home = self._find_jdk_home(install_dir)
            await self.set_environment_variables(java_home)
            verification = await self.verify_java_installation(java_home)
            if not verification["verified"]:
                raise InstallerError("Java binary did not run after installation")

            return {
                "success": True,
                "java_home": str(java_home),
                "message": f"Java {version} installed successfully",
            }
        except (InstallerError, httpx.HTTPError, OSError) as e:
            logger.error("Java %d installation failed: %s", version, e)
            return {
                "success": False,
                "java_home": None,
                "message": f"Java installation failed: {e}",
            }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _download(self, url: str, dest: Path) -> None:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(300.0, connect=10.0), follow_redirects=True,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)

    async def _extract(self, archive: Path, dest: Path) -> None:
        if self.platform == "windows":
            await run_command(
                [
                    "powershell", "-Command",
                    f"Expand-Archive -Path '{archive}' -DestinationPath '{dest}' -Force",
                ],
                timeout=settings.install_command_timeout,
            )
        else:
            await run_command(
                ["tar", "-xzf", str(archive), "-C", str(dest)],
                timeout=settings.install_command_timeout,
            )

    @staticmethod
    def _find_jdk_home(install_dir: Path) -> Path:
        for candidate in sorted(install_dir.iterdir()):
            if candidate.is_dir() and "jdk" in candidate.name and (candidate / "bin").is_dir():
                return candidate
        raise InstallerError(f"No JDK directory found in {install_dir}")

    async def set_environment_variables(self, java_home: Path) -> None:
        """Persist JAVA_HOME / PATH for new shells."""
        if self.platform == "windows":
            await run_command(["setx", "JAVA_HOME", str(java_home)])
            await run_command(["setx", "PATH", f"%PATH%;{java_home}\\bin"])
            return

        block = (
            "\n# Java (added by ScalarDB installer)\n"
            f'export JAVA_HOME="{java_home}"\n'
            'export PATH="$JAVA_HOME/bin:$PATH"\n'
        )
        home = Path.home()
        for name in _PROFILE_FILES:
            profile = home / name
            if not profile.exists():
                continue
            if "JAVA_HOME" in profile.read_text():
                continue
            with open(profile, "a") as f:
                f.write(block)
            logger.info("Added JAVA_HOME to %s", profile)

    async def verify_java_installation(self, java_home: Path | str) -> dict[str, Any]:
        java_bin = Path(java_home) / "bin" / ("java.exe" if self.platform == "windows" else "java")
        try:
            result = await run_command([str(java_bin), "-version"], timeout=30)
        except InstallerError:
            return {"verified": False, "version": None}
        return {"verified": True, "version": parse_java_version(result.output)}
