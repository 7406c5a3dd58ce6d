"""Platform, OS and shell detection utilities."""

import os
import platform
from pathlib import Path

from devflow.config.schemas import PlatformOS, Shell


def get_os() -> PlatformOS:
    """Get the current operating system.

    Returns:
        One of: "windows", "linux", "macos"
    """
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    else:
        return "linux"


def get_sys_platform(os_name: PlatformOS) -> str:
    """Map an OS name to the matching ``sys.platform`` identifier."""
    return {"macos": "darwin", "windows": "win32"}.get(os_name, "linux")


def detect_shell(env: dict[str, str] | None = None) -> Shell:
    """Detect the user's interactive shell from environment indicators.

    PowerShell sets PSModulePath in every session, so it wins over SHELL.

    Args:
        env: Environment mapping (defaults to os.environ)

    Returns:
        One of: "zsh", "bash", "fish", "powershell", "unknown"
    """
    if env is None:
        env = dict(os.environ)

    if env.get("PSModulePath"):
        return "powershell"

    shell_path = env.get("SHELL")
    if not shell_path:
        return "unknown"

    name = Path(shell_path).name
    if name in ("zsh", "bash", "fish"):
        return name  # type: ignore[return-value]
    return "unknown"


def get_home_directory() -> Path:
    """Get the user's home directory.

    HOME takes priority over the platform lookup.

    Returns:
        Path to the home directory

    Raises:
        RuntimeError: If no home directory can be determined
    """
    home = os.environ.get("HOME")
    if not home:
        try:
            home = str(Path.home())
        except RuntimeError:
            home = ""
    if not home:
        raise RuntimeError("Unable to determine home directory. Set HOME environment variable.")
    return Path(home)


def get_user_profile_directory() -> Path | None:
    """Get the Windows profile directory from USERPROFILE, if set."""
    user_profile = os.environ.get("USERPROFILE")
    return Path(user_profile) if user_profile else None
