"""Unreachable-network behaviour of the retried download paths.

The real tenacity-decorated methods run with the wait removed, so the last
connection error must come out of the retry layer and be reported the same
way as any other download failure.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from tenacity import wait_none

from scalardb_setup.services.installation_orchestrator import InstallationOrchestrator
from scalardb_setup.services.java_installer import JavaInstaller
from scalardb_setup.services.scalardb_downloader import ScalarDBDownloader, get_user_friendly_error
from scalardb_setup.services.scalardb_installer import ScalarDBInstaller

OFFLINE = httpx.ConnectError("connection refused")


@pytest.fixture
def no_retry_wait():
    with patch.object(JavaInstaller._download.retry, "wait", wait_none()), \
         patch.object(ScalarDBInstaller._download.retry, "wait", wait_none()), \
         patch.object(ScalarDBDownloader._search.retry, "wait", wait_none()), \
         patch.object(ScalarDBDownloader._fetch_checksum.retry, "wait", wait_none()):
        yield


@pytest.fixture
def offline_stream(no_retry_wait):
    with patch("httpx.AsyncClient.stream", side_effect=OFFLINE) as stream:
        yield stream


@pytest.mark.asyncio
async def test_java_install_reports_connection_error(offline_stream, tmp_path):
    installer = JavaInstaller()
    installer.platform = "linux"
    installer.arch = "x64"

    with patch.object(installer, "get_install_dir", return_value=tmp_path / "jdk-17"):
        result = await installer.install_java(17)

    assert result["success"] is False
    assert result["java_home"] is None
    assert "connection refused" in result["message"]
    assert offline_stream.call_count == 3


@pytest.mark.asyncio
async def test_scalardb_jar_install_reports_connection_error(offline_stream, tmp_path):
    installer = ScalarDBInstaller(tmp_path)

    result = await installer.install_scalardb(
        {"installType": "jar", "version": "3.16.0", "installPath": str(tmp_path / "lib")}
    )

    assert result == {"success": False, "error": "connection refused"}
    assert offline_stream.call_count == 3


@pytest.mark.asyncio
async def test_scalardl_install_reports_connection_error(offline_stream, tmp_path):
    result = await ScalarDBInstaller(tmp_path).install_scalardl({"installPath": str(tmp_path)})

    assert result["success"] is False


@pytest.mark.asyncio
async def test_offline_scalardb_step_does_not_fail_installation(offline_stream, relay, drain, tmp_path):
    java = AsyncMock()
    java.check_java_version.return_value = {"installed": True, "version": 17, "vendor": "openjdk"}
    tester = AsyncMock()
    tester.test_connection.return_value = {"connected": True, "message": "Connected"}
    schema = AsyncMock()
    schema.create_schema.return_value = {"success": True, "message": "created", "tables": []}
    orchestrator = InstallationOrchestrator(
        relay=relay,
        start_delay=0,
        java_installer=java,
        scalardb_installer=ScalarDBInstaller(tmp_path),
        database_tester=tester,
        schema_manager=schema,
        docker_deployer=AsyncMock(),
    )
    config = {
        "version": "3.16.0",
        "installType": "jar",
        "installPath": str(tmp_path / "lib"),
        "outputDir": str(tmp_path),
        "database": {
            "type": "postgresql", "host": "localhost", "port": 5432,
            "username": "postgres", "password": "postgres", "database": "scalardb",
        },
    }
    sub = relay.subscribe()
    relay.join(sub, "offline")
    relay.start_installation("offline", config)

    await orchestrator.run("offline", config)

    assert relay.get_installation_state("offline").status == "completed"
    logs = [m["data"] for m in drain(sub) if m["event"] == "installation:log"]
    assert any(log["level"] == "warning" and "connection refused" in log["message"] for log in logs)


@pytest.mark.asyncio
async def test_version_lookup_surfaces_connect_error(no_retry_wait):
    with patch("scalardb_setup.services.scalardb_downloader.cache_get", AsyncMock(return_value=None)), \
         patch("httpx.AsyncClient.get", AsyncMock(side_effect=OFFLINE)) as get:
        with pytest.raises(httpx.ConnectError) as exc:
            await ScalarDBDownloader().get_available_versions()

    assert get.await_count == 3
    assert get_user_friendly_error(exc.value) == "Cannot reach Maven Central. Please check your internet connection."
