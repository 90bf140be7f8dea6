"""Shared fixtures for launcher tests.

Provides mocks for platform detection, subprocess calls, and a factory
fixture for PrerequisiteChecker instances.
"""

import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from run import PrerequisiteChecker


# ---------------------------------------------------------------------------
# Platform mock fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_macos():
    """Patch platform.system() to return 'Darwin'."""
    with patch("run.platform.system", return_value="Darwin"):
        yield


@pytest.fixture
def mock_linux():
    """Patch platform.system() to return 'Linux'."""
    with patch("run.platform.system", return_value="Linux"):
        yield


@pytest.fixture
def mock_windows():
    """Patch platform.system() to return 'Windows'."""
    with patch("run.platform.system", return_value="Windows"):
        yield


# ---------------------------------------------------------------------------
# Subprocess mock fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Patch subprocess.run in the launcher with a configurable MagicMock.

    The mock returns returncode=0 and empty stdout/stderr by default.
    Tests can override via mock_subprocess.return_value or side_effect.
    """
    mock_result = MagicMock()
    mock_result.returncode = 0
    mock_result.stdout = ""
    mock_result.stderr = ""

    with patch("run.subprocess.run", return_value=mock_result) as mock_run:
        yield mock_run


# ---------------------------------------------------------------------------
# PrerequisiteChecker factory
# ---------------------------------------------------------------------------

@pytest.fixture
def checker_factory():
    """Factory that creates PrerequisiteChecker with configurable options.

    Usage:
        checker = checker_factory(mode="installer", installer_port=4000)
    """
    def _factory(
        mode: str = "all",
        dashboard_port: int = 3000,
        installer_port: int = 3002,
        host: str = "localhost",
    ):
        config = {
            "mode": mode,
            "host": host,
            "dashboard_port": dashboard_port,
            "installer_port": installer_port,
        }
        return PrerequisiteChecker(mode=mode, config=config, color_enabled=False)
    return _factory
