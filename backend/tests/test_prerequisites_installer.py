"""Tests for Homebrew/Docker/Maven/Gradle detection and installation."""

from unittest.mock import AsyncMock, patch

import pytest

from scalardb_setup.core.errors import CommandError
from scalardb_setup.services.prerequisites_installer import PrerequisitesInstaller
from scalardb_setup.utils.shell import CommandResult

RUN = "scalardb_setup.services.prerequisites_installer.run_command"


def _fake_run(outputs: dict[str, str], failing: tuple[str, ...] = ()):
    """Build a run_command stand-in keyed by the first two argv words."""

    async def run(cmd, **kwargs):
        key = " ".join(cmd[:2]) if isinstance(cmd, list) else cmd
        if key in failing or (isinstance(cmd, list) and cmd[0] in failing):
            raise CommandError(key, 127, "", "not found")
        return CommandResult(key, 0, outputs.get(key, ""), "")

    return run


def _installer(platform: str) -> PrerequisitesInstaller:
    java = AsyncMock()
    java.check_java_version.return_value = {"installed": True, "version": 17, "vendor": "openjdk", "home": None}
    installer = PrerequisitesInstaller(java_installer=java)
    installer.platform = platform
    return installer


class TestChecks:
    @pytest.mark.asyncio
    async def test_maven_version_parsed(self):
        fake = _fake_run({"mvn --version": "Apache Maven 3.9.6 (bc0240f3)"})
        with patch(RUN, side_effect=fake):
            status = await _installer("linux").check_maven()

        assert status["installed"] is True
        assert status["version"] == "3.9.6"

    @pytest.mark.asyncio
    async def test_missing_tool(self):
        with patch(RUN, side_effect=_fake_run({}, failing=("gradle",))):
            status = await _installer("linux").check_gradle()

        assert status["installed"] is False
        assert "not found" in status["error"]

    @pytest.mark.asyncio
    async def test_docker_running_flag(self):
        fake = _fake_run({"docker --version": "Docker version 24.0.7, build afdd53b"})
        with patch(RUN, side_effect=fake):
            status = await _installer("linux").check_docker()

        assert status["version"] == "24.0.7"
        assert status["running"] is True

    @pytest.mark.asyncio
    async def test_homebrew_is_mac_only(self):
        status = await _installer("linux").check_homebrew()
        assert status["installed"] is False
        assert "macOS" in status["error"]

    @pytest.mark.asyncio
    async def test_check_all_includes_homebrew_on_mac(self):
        fake = _fake_run({"brew --version": "Homebrew 4.2.0"})
        with patch(RUN, side_effect=fake):
            results = await _installer("mac").check_all_prerequisites()

        assert set(results) == {"java", "homebrew", "docker", "maven", "gradle"}
        assert results["homebrew"]["version"] == "4.2.0"

    @pytest.mark.asyncio
    async def test_check_all_skips_homebrew_elsewhere(self):
        with patch(RUN, side_effect=_fake_run({})):
            results = await _installer("linux").check_all_prerequisites()

        assert "homebrew" not in results


class TestInstall:
    @pytest.mark.asyncio
    async def test_already_installed_short_circuits(self):
        installer = _installer("linux")
        with patch.object(installer, "check_maven", AsyncMock(return_value={"installed": True, "version": "3.9.6"})), \
             patch(RUN, AsyncMock()) as run:
            result = await installer.install_maven()

        assert result == {"success": True, "message": "Maven is already installed", "version": "3.9.6"}
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_after_install_is_failure(self):
        installer = _installer("mac")
        missing = {"installed": False, "version": None}
        with patch.object(installer, "check_gradle", AsyncMock(return_value=missing)), \
             patch(RUN, AsyncMock()):
            result = await installer.install_gradle()

        assert result["success"] is False
        assert "not found on PATH" in result["message"]

    @pytest.mark.asyncio
    async def test_windows_asks_for_manual_install(self):
        installer = _installer("windows")
        with patch.object(installer, "check_docker", AsyncMock(return_value={"installed": False})):
            result = await installer.install_docker()

        assert result["success"] is False
        assert "docker-desktop" in result["message"]

    @pytest.mark.asyncio
    async def test_linux_maven_uses_distro_package_manager(self):
        installer = _installer("linux")
        checks = AsyncMock(side_effect=[{"installed": False}, {"installed": True, "version": "3.8.7"}])
        with patch.object(installer, "check_maven", checks), \
             patch("scalardb_setup.services.prerequisites_installer.detect_linux_distro", return_value="debian"), \
             patch(RUN, AsyncMock()) as run:
            result = await installer.install_maven()

        assert result["success"] is True
        assert "apt-get install -y maven" in run.call_args.args[0]

    @pytest.mark.asyncio
    async def test_install_missing_reports_unknown_tools(self):
        installer = _installer("linux")
        with patch.object(installer, "install_docker", AsyncMock(return_value={"success": True, "message": "ok"})):
            results = await installer.install_missing_prerequisites(["docker", "cobol"])

        assert results["docker"]["success"] is True
        assert results["cobol"] == {"success": False, "message": "Unknown tool: cobol"}

    @pytest.mark.asyncio
    async def test_install_missing_java_uses_default_version(self):
        installer = _installer("linux")
        installer.java_installer.install_java.return_value = {"success": True}
        await installer.install_missing_prerequisites(["java"])

        installer.java_installer.install_java.assert_awaited_once_with(17)
