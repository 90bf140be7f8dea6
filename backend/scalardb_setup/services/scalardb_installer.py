"""Wire ScalarDB into a project: Maven/Gradle dependency, standalone jar or server layout."""

import logging
import re
from pathlib import Path
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from scalardb_setup.config import settings
from scalardb_setup.core.errors import InstallerError
from scalardb_setup.utils.shell import run_command

logger = logging.getLogger(__name__)

JAR_SEARCH_DIRS = (
    Path.home() / ".scalardb",
    Path("/usr/local/lib/scalardb"),
    Path("/opt/scalardb"),
)

_MAVEN_TREE_RE = re.compile(r"com\.scalar-labs:scalardb:jar:(\d+\.\d+\.\d+)")
_GRADLE_DEPS_RE = re.compile(r"com\.scalar-labs:scalardb:(\d+\.\d+\.\d+)")
_JAR_RE = re.compile(r"scalardb-(\d+\.\d+\.\d+)\.jar$")

START_SCRIPT = """#!/bin/sh
# Start ScalarDB Server
cd "$(dirname "$0")"
exec java -jar scalardb-server-{version}.jar --config database.properties "$@"
"""


def _version_key(version: str) -> tuple:
    # 3.16.0-SNAPSHOT sorts below 3.16.0
    release, _, qualifier = version.partition("-")
    numbers = tuple(int(p) if p.isdigit() else -1 for p in release.split("."))
    return numbers, not qualifier


def get_maven_central_url(artifact: str, version: str) -> str:
    group_path = settings.scalardb_group_id.replace(".", "/")
    return f"{settings.maven_repo_url}/{group_path}/{artifact}/{version}/{artifact}-{version}.jar"


class ScalarDBInstaller:
    """Detect and install ScalarDB as a project dependency or standalone artifact."""

    def __init__(self, project_dir: str | Path | None = None) -> None:
        self.project_dir = Path(project_dir or Path.cwd())

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    async def check_scalardb_installation(self) -> dict[str, Any]:
        """Probe Maven, then Gradle, then well-known jar locations."""
        for probe in (self._check_maven, self._check_gradle, self._check_jar):
            found = await probe()
            if found:
                return {"installed": True, **found}
        return {"installed": False, "version": None, "location": None, "type": None}

    async def _check_maven(self) -> dict[str, Any] | None:
        if not (self.project_dir / "pom.xml").exists():
            return None
        try:
            result = await run_command(["mvn", "dependency:tree"], cwd=str(self.project_dir))
        except InstallerError:
            return None
        if "com.scalar-labs:scalardb" not in result.stdout:
            return None
        match = _MAVEN_TREE_RE.search(result.stdout)
        return {
            "version": match.group(1) if match else None,
            "location": str(self.project_dir / "pom.xml"),
            "type": "maven",
        }

    async def _check_gradle(self) -> dict[str, Any] | None:
        build_file = self._gradle_build_file()
        if build_file is None:
            return None
        try:
            result = await run_command(["gradle", "dependencies"], cwd=str(self.project_dir))
        except InstallerError:
            return None
        match = _GRADLE_DEPS_RE.search(result.stdout)
        if not match:
            return None
        return {"version": match.group(1), "location": str(build_file), "type": "gradle"}

    async def _check_jar(self) -> dict[str, Any] | None:
        for directory in (*JAR_SEARCH_DIRS, self.project_dir):
            if not directory.is_dir():
                continue
            for path in sorted(directory.glob("scalardb-*.jar")):
                match = _JAR_RE.search(path.name)
                if match:
                    return {"version": match.group(1), "location": str(path), "type": "jar"}
        return None

    def _gradle_build_file(self) -> Path | None:
        for name in ("build.gradle", "build.gradle.kts"):
            if (self.project_dir / name).exists():
                return self.project_dir / name
        return None

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    async def install_scalardb(self, config: dict[str, Any]) -> dict[str, Any]:
        """Install according to ``config["installType"]`` (maven, gradle, jar, server)."""
        install_type = config.get("installType", "maven")
        version = config.get("version") or settings.scalardb_default_version
        install_path = Path(config.get("installPath") or settings.default_install_path)

        handlers = {
            "maven": lambda: self._install_maven(version),
            "gradle": lambda: self._install_gradle(version),
            "jar": lambda: self._install_jar("scalardb", version, install_path),
            "server": lambda: self._install_server(version, install_path),
        }
        handler = handlers.get(install_type)
        if handler is None:
            return {"success": False, "error": f"Unsupported install type: {install_type}"}

        try:
            return await handler()
        except (InstallerError, httpx.HTTPError, OSError) as e:
            logger.error("ScalarDB %s install failed: %s", install_type, e)
            return {"success": False, "error": str(e)}

    async def install_scalardl(self, config: dict[str, Any]) -> dict[str, Any]:
        version = config.get("version") or settings.scalardb_default_version
        install_path = Path(config.get("installPath") or settings.default_install_path)
        try:
            return await self._install_jar("scalardl", version, install_path)
        except (InstallerError, httpx.HTTPError, OSError) as e:
            logger.error("ScalarDL install failed: %s", e)
            return {"success": False, "error": str(e)}

    async def _install_maven(self, version: str) -> dict[str, Any]:
        pom = self.project_dir / "pom.xml"
        if not pom.exists():
            return {"success": False, "error": f"pom.xml not found in {self.project_dir}"}

        content = pom.read_text()
        if "scalardb" not in content:
            if "</dependencies>" not in content:
                return {"success": False, "error": "pom.xml has no <dependencies> section"}
            dependency = (
                "    <dependency>\n"
                f"      <groupId>{settings.scalardb_group_id}</groupId>\n"
                "      <artifactId>scalardb</artifactId>\n"
                f"      <version>{version}</version>\n"
                "    </dependency>\n"
                "  </dependencies>"
            )
            pom.write_text(content.replace("</dependencies>", dependency, 1))
            logger.info("Added ScalarDB %s to %s", version, pom)

        await run_command(
            ["mvn", "dependency:resolve"],
            cwd=str(self.project_dir),
            timeout=settings.install_command_timeout,
        )
        return {"success": True, "type": "maven", "version": version, "location": str(pom)}

    async def _install_gradle(self, version: str) -> dict[str, Any]:
        build_file = self._gradle_build_file()
        if build_file is None:
            return {"success": False, "error": f"build.gradle not found in {self.project_dir}"}

        content = build_file.read_text()
        if "scalardb" not in content:
            if "dependencies {" not in content:
                return {"success": False, "error": "build.gradle has no dependencies block"}
            line = f"    implementation '{settings.scalardb_group_id}:scalardb:{version}'"
            build_file.write_text(content.replace("dependencies {", f"dependencies {{\n{line}", 1))
            logger.info("Added ScalarDB %s to %s", version, build_file)

        await run_command(
            ["gradle", "dependencies"],
            cwd=str(self.project_dir),
            timeout=settings.install_command_timeout,
        )
        return {"success": True, "type": "gradle", "version": version, "location": str(build_file)}

    async def _install_jar(self, artifact: str, version: str, install_path: Path) -> dict[str, Any]:
        install_path.mkdir(parents=True, exist_ok=True)
        dest = install_path / f"{artifact}-{version}.jar"
        await self._download(get_maven_central_url(artifact, version), dest)
        return {"success": True, "type": "jar", "version": version, "location": str(dest)}

    async def _install_server(self, version: str, install_path: Path) -> dict[str, Any]:
        server_dir = install_path / "scalardb-server"
        server_dir.mkdir(parents=True, exist_ok=True)
        jar = server_dir / f"scalardb-server-{version}.jar"
        await self._download(get_maven_central_url("scalardb-server", version), jar)

        script = server_dir / "start-server.sh"
        script.write_text(START_SCRIPT.format(version=version))
        script.chmod(0o755)
        return {"success": True, "type": "server", "version": version, "location": str(server_dir)}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        reraise=True,
    )
    async def _download(self, url: str, dest: Path) -> None:
        logger.info("Downloading %s", url)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(300.0, connect=10.0), follow_redirects=True,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)

    # ------------------------------------------------------------------
    # Verification / discovery
    # ------------------------------------------------------------------

    async def verify_installation(self, install_type: str, location: str | None = None) -> dict[str, Any]:
        if install_type in ("maven", "gradle"):
            target = self
            if location:
                path = Path(location)
                target = ScalarDBInstaller(path.parent if path.is_file() else path)
            probe = target._check_maven if install_type == "maven" else target._check_gradle
            found = await probe()
            return {"verified": found is not None, **(found or {})}
        if install_type == "jar":
            ok = bool(location) and Path(location).is_file()
            return {"verified": ok, "location": location}
        if install_type == "server":
            ok = bool(location) and (Path(location) / "start-server.sh").is_file()
            return {"verified": ok, "location": location}
        return {"verified": False, "error": f"Unsupported install type: {install_type}"}

    async def get_available_versions(self, artifact: str = "scalardb") -> list[str]:
        params = {
            "q": f'g:"{settings.scalardb_group_id}" AND a:"{artifact}"',
            "core": "gav",
            "rows": 20,
            "wt": "json",
        }
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
                response = await client.get(settings.maven_search_url, params=params)
                response.raise_for_status()
                docs = response.json().get("response", {}).get("docs", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not list %s versions: %s", artifact, e)
            return []
        return sorted((d["v"] for d in docs if "v" in d), key=_version_key, reverse=True)
