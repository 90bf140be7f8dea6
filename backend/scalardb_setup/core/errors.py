"""Installer-specific exceptions."""


class InstallerError(Exception):
    """Base exception for installer operations."""

    pass


class CommandError(InstallerError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, cmd: str, returncode: int, stdout: str = "", stderr: str = ""):
        detail = (stderr or stdout).strip()
        message = f"Command failed ({returncode}): {cmd}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeout(InstallerError):
    """Raised when an external command exceeds its timeout."""

    def __init__(self, cmd: str, timeout: float):
        super().__init__(f"Command timed out after {timeout:g}s: {cmd}")
        self.cmd = cmd
        self.timeout = timeout


class UnsupportedPlatformError(InstallerError):
    """Raised when an operation is not available on the current OS."""

    pass


class UnsupportedVersionError(InstallerError):
    """Raised when a requested tool version is not supported."""

    pass


class PrerequisiteError(InstallerError):
    """Raised when a required tool is missing or unusable.

    Carries a plain-language message and an optional link the UI can offer.
    """

    def __init__(self, message: str, user_message: str | None = None, action_link: str | None = None):
        super().__init__(message)
        self.user_message = user_message or message
        self.action_link = action_link


class DownloadError(InstallerError):
    """Raised when an artifact download or lookup fails."""

    pass


class ChecksumMismatchError(DownloadError):
    """Raised when a downloaded file does not match its published SHA-1."""

    pass


class SchemaError(InstallerError):
    """Raised when a schema definition cannot be loaded or applied."""

    pass


class ConfigurationError(InstallerError):
    """Raised for invalid or unknown configuration requests."""

    pass
