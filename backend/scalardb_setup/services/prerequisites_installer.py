"""Detection and installation of the build/runtime tools ScalarDB needs.

Homebrew (macOS only), Docker, Maven and Gradle. Every ``install_*`` returns
``{success, message, ...}`` and re-runs the matching check so a "successful"
package-manager run that left nothing on PATH is still reported as a failure.
"""

import logging
import re
from typing import Any

from scalardb_setup.config import settings
from scalardb_setup.core.errors import InstallerError
from scalardb_setup.services.java_installer import JavaInstaller
from scalardb_setup.utils.shell import run_command, which
from scalardb_setup.utils.system import current_platform, detect_linux_distro

logger = logging.getLogger(__name__)

HOMEBREW_INSTALL_SCRIPT = (
    '/bin/bash -c "$(curl -fsSL '
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)
DOCKER_INSTALL_SCRIPT = "curl -fsSL https://get.docker.com -o /tmp/get-docker.sh && sudo sh /tmp/get-docker.sh"
SDKMAN_GRADLE_SCRIPT = (
    'curl -s "https://get.sdkman.io" | bash && '
    'bash -c "source $HOME/.sdkman/bin/sdkman-init.sh && sdk install gradle"'
)

_HOMEBREW_RE = re.compile(r"Homebrew (\d+\.\d+\.\d+)")
_DOCKER_RE = re.compile(r"Docker version (\d+\.\d+\.\d+)")
_MAVEN_RE = re.compile(r"Apache Maven (\d+\.\d+\.\d+)")
_GRADLE_RE = re.compile(r"Gradle (\d+\.\d+(?:\.\d+)?)")


def _version(pattern: re.Pattern[str], output: str) -> str | None:
    match = pattern.search(output)
    return match.group(1) if match else None


def _missing(error: str) -> dict[str, Any]:
    return {"installed": False, "version": None, "path": None, "error": error}


class PrerequisitesInstaller:
    """Check and install Homebrew, Docker, Maven and Gradle."""

    def __init__(self, java_installer: JavaInstaller | None = None) -> None:
        self.platform = current_platform()
        self.java_installer = java_installer or JavaInstaller()

    async def _probe(self, argv: list[str], pattern: re.Pattern[str]) -> dict[str, Any]:
        try:
            result = await run_command(argv, timeout=30)
        except InstallerError as e:
            return _missing(str(e))
        return {
            "installed": True,
            "version": _version(pattern, result.output),
            "path": which(argv[0]),
            "error": None,
        }

    # ------------------------------------------------------------------
    # Homebrew
    # ------------------------------------------------------------------

    async def check_homebrew(self) -> dict[str, Any]:
        if self.platform != "mac":
            return _missing("Homebrew is only available on macOS")
        return await self._probe(["brew", "--version"], _HOMEBREW_RE)

    async def install_homebrew(self) -> dict[str, Any]:
        if self.platform != "mac":
            return {"success": False, "message": "Homebrew is only available on macOS"}

        status = await self.check_homebrew()
        if status["installed"]:
            return {"success": True, "message": "Homebrew is already installed", "version": status["version"]}

        logger.info("Installing Homebrew")
        return await self._install(HOMEBREW_INSTALL_SCRIPT, self.check_homebrew, "Homebrew")

    # ------------------------------------------------------------------
    # Docker
    # ------------------------------------------------------------------

    async def check_docker(self) -> dict[str, Any]:
        status = await self._probe(["docker", "--version"], _DOCKER_RE)
        status["running"] = False
        if status["installed"]:
            try:
                info = await run_command(["docker", "info"], timeout=30, check=False)
                status["running"] = info.ok
            except InstallerError:
                logger.debug("docker info did not respond", exc_info=True)
        return status

    async def install_docker(self) -> dict[str, Any]:
        status = await self.check_docker()
        if status["installed"]:
            return {"success": True, "message": "Docker is already installed", "version": status["version"]}

        if self.platform == "mac":
            brew = await self.check_homebrew()
            if not brew["installed"]:
                return {"success": False, "message": "Homebrew is required to install Docker Desktop"}
            command: str | list[str] = ["brew", "install", "--cask", "docker"]
        elif self.platform == "linux":
            command = DOCKER_INSTALL_SCRIPT
        else:
            return {
                "success": False,
                "message": "Please install Docker Desktop manually from https://www.docker.com/products/docker-desktop",
            }

        logger.info("Installing Docker")
        result = await self._install(command, self.check_docker, "Docker")
        if result["success"] and self.platform == "mac":
            result["message"] += ". Start Docker Desktop from Applications to finish setup"
        return result

    # ------------------------------------------------------------------
    # Maven
    # ------------------------------------------------------------------

    async def check_maven(self) -> dict[str, Any]:
        return await self._probe(["mvn", "--version"], _MAVEN_RE)

    async def install_maven(self) -> dict[str, Any]:
        status = await self.check_maven()
        if status["installed"]:
            return {"success": True, "message": "Maven is already installed", "version": status["version"]}

        if self.platform == "mac":
            command: str | list[str] = ["brew", "install", "maven"]
        elif self.platform == "linux":
            distro = detect_linux_distro()
            if distro == "debian":
                command = "sudo apt-get update && sudo apt-get install -y maven"
            elif distro == "fedora":
                command = "sudo dnf install -y maven || sudo yum install -y maven"
            else:
                return {"success": False, "message": "Unsupported Linux distribution for automatic Maven install"}
        else:
            return {
                "success": False,
                "message": "Please install Maven manually from https://maven.apache.org/download.cgi",
            }

        logger.info("Installing Maven")
        return await self._install(command, self.check_maven, "Maven")

    # ------------------------------------------------------------------
    # Gradle
    # ------------------------------------------------------------------

    async def check_gradle(self) -> dict[str, Any]:
        return await self._probe(["gradle", "--version"], _GRADLE_RE)

    async def install_gradle(self) -> dict[str, Any]:
        status = await self.check_gradle()
        if status["installed"]:
            return {"success": True, "message": "Gradle is already installed", "version": status["version"]}

        if self.platform == "mac":
            command: str | list[str] = ["brew", "install", "gradle"]
        elif self.platform == "linux":
            if detect_linux_distro() == "debian":
                command = "sudo apt-get update && sudo apt-get install -y gradle"
            else:
                command = SDKMAN_GRADLE_SCRIPT
        else:
            return {
                "success": False,
                "message": "Please install Gradle manually from https://gradle.org/install/",
            }

        logger.info("Installing Gradle")
        return await self._install(command, self.check_gradle, "Gradle")

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    async def _install(self, command: str | list[str], check, tool: str) -> dict[str, Any]:
        try:
            await run_command(command, timeout=settings.install_command_timeout)
        except InstallerError as e:
            logger.error("%s installation failed: %s", tool, e)
            return {"success": False, "message": f"Failed to install {tool}: {e}"}

        status = await check()
        if not status["installed"]:
            return {"success": False, "message": f"{tool} installation finished but {tool} was not found on PATH"}
        return {"success": True, "message": f"{tool} installed successfully", "version": status["version"]}

    async def check_all_prerequisites(self) -> dict[str, Any]:
        results: dict[str, Any] = {"java": await self.java_installer.check_java_version()}
        if self.platform == "mac":
            results["homebrew"] = await self.check_homebrew()
        results["docker"] = await self.check_docker()
        results["maven"] = await self.check_maven()
        results["gradle"] = await self.check_gradle()
        return results

    async def install_missing_prerequisites(self, tools: list[str]) -> dict[str, Any]:
        """Install each named tool in order; unknown names are reported, not raised."""
        installers = {
            "homebrew": self.install_homebrew,
            "docker": self.install_docker,
            "maven": self.install_maven,
            "gradle": self.install_gradle,
        }
        results: dict[str, Any] = {}
        for tool in tools:
            if tool == "java":
                results[tool] = await self.java_installer.install_java(settings.java_default_version)
            elif tool in installers:
                results[tool] = await installers[tool]()
            else:
                results[tool] = {"success": False, "message": f"Unknown tool: {tool}"}
        return results
