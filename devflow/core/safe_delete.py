"""Safe-delete: redirect ``rm`` to the trash from the user's shell profile.

A shell-specific block is generated and kept inside a marker-delimited
region of the shell's startup file, so it can be detected and removed
later without touching anything else the user keeps there.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from devflow.config.schemas import PlatformOS, SafeDeleteInfo, Shell
from devflow.utils.filesystem import read_text_if_exists, remove_file, write_text_file
from devflow.utils.markers import (
    SAFE_DELETE_END_MARKER,
    SAFE_DELETE_START_MARKER,
    append_marked_block,
    find_marked_region,
    strip_marked_region,
    wrap_lines,
)
from devflow.utils.platform import get_sys_platform

logger = logging.getLogger("devflow.safe_delete")

DEFAULT_TRASH_COMMAND = "trash"


# =============================================================================
# Block generation
# =============================================================================


def _posix_block(cmd: str) -> list[str]:
    return [
        "rm() {",
        "  local files=()",
        '  for arg in "$@"; do',
        '    [[ "$arg" =~ ^- ]] || files+=("$arg")',
        "  done",
        "  if (( ${#files[@]} > 0 )); then",
        f'    {cmd} "${{files[@]}}"',
        "  fi",
        "}",
        "command() {",
        '  if [[ "$1" == "rm" ]]; then',
        '    shift; rm "$@"',
        "  else",
        '    builtin command "$@"',
        "  fi",
        "}",
    ]


def _fish_block(cmd: str) -> list[str]:
    return [
        'function rm --description "Safe delete via trash"',
        "  set -l files",
        "  for arg in $argv",
        "    if not string match -q -- '-*' $arg",
        "      set files $files $arg",
        "    end",
        "  end",
        "  if test (count $files) -gt 0",
        f"    {cmd} $files",
        "  end",
        "end",
    ]


_POWERSHELL_UNALIAS = [
    "if (Get-Alias rm -ErrorAction SilentlyContinue) {",
    "  Remove-Alias rm -Force -Scope Global",
    "}",
]


def _powershell_recycle_bin_block() -> list[str]:
    return [
        *_POWERSHELL_UNALIAS,
        "function rm {",
        "  $files = $args | Where-Object { $_ -notlike '-*' }",
        "  if ($files) {",
        "    Add-Type -AssemblyName Microsoft.VisualBasic",
        "    foreach ($f in $files) {",
        "      $p = Resolve-Path $f -ErrorAction SilentlyContinue",
        "      if ($p) {",
        "        if (Test-Path $p -PathType Container) {",
        "          [Microsoft.VisualBasic.FileIO.FileSystem]::DeleteDirectory(",
        "            $p, 'OnlyErrorDialogs', 'SendToRecycleBin')",
        "        } else {",
        "          [Microsoft.VisualBasic.FileIO.FileSystem]::DeleteFile(",
        "            $p, 'OnlyErrorDialogs', 'SendToRecycleBin')",
        "        }",
        "      }",
        "    }",
        "  }",
        "}",
    ]


def _powershell_external_block(cmd: str) -> list[str]:
    return [
        *_POWERSHELL_UNALIAS,
        "function rm {",
        "  $files = $args | Where-Object { $_ -notlike '-*' }",
        f"  if ($files) {{ & {cmd} @files }}",
        "}",
    ]


def generate_safe_delete_block(
    shell: Shell | str,
    platform: str,
    trash_command: str | None,
) -> str | None:
    """Generate the marker-wrapped safe-delete block for a shell.

    Args:
        shell: Target shell ("bash", "zsh", "fish" or "powershell")
        platform: ``sys.platform`` style identifier ("darwin", "linux", "win32")
        trash_command: External trash command; defaults to "trash"

    Returns:
        The block without a trailing newline, or None for unsupported shells
    """
    cmd = trash_command or DEFAULT_TRASH_COMMAND

    if shell in ("bash", "zsh"):
        return wrap_lines(_posix_block(cmd))
    if shell == "fish":
        return wrap_lines(_fish_block(cmd))
    if shell == "powershell":
        # Windows uses the recycle bin via .NET; no external command needed
        if platform == "win32":
            return wrap_lines(_powershell_recycle_bin_block())
        return wrap_lines(_powershell_external_block(cmd))
    return None


# =============================================================================
# Profile file effects
# =============================================================================


def is_already_installed(profile_path: Path) -> bool:
    """Check if the safe-delete block is installed in a profile file.

    Both marker lines must be present, start before end.
    """
    content = read_text_if_exists(profile_path)
    if content is None:
        return False
    return find_marked_region(content, SAFE_DELETE_START_MARKER, SAFE_DELETE_END_MARKER) is not None


def install_to_profile(profile_path: Path, block: str) -> None:
    """Append the safe-delete block to a profile file.

    Creates parent directories and the file if they don't exist. Callers
    gate on is_already_installed; this function always appends.

    Args:
        profile_path: Shell startup file
        block: Block from generate_safe_delete_block
    """
    existing = read_text_if_exists(profile_path) or ""
    write_text_file(profile_path, append_marked_block(existing, block))
    logger.info("Installed safe-delete block in %s", profile_path)


def remove_from_profile(profile_path: Path) -> bool:
    """Remove the safe-delete block from a profile file.

    The file is deleted when nothing but whitespace remains (as happens
    with the dedicated fish function file).

    Returns:
        True if the block was found and removed, False otherwise
    """
    content = read_text_if_exists(profile_path)
    if content is None:
        return False

    remaining = strip_marked_region(content, SAFE_DELETE_START_MARKER, SAFE_DELETE_END_MARKER)
    if remaining is None:
        return False

    if remaining:
        write_text_file(profile_path, remaining)
    else:
        remove_file(profile_path)
        logger.info("Deleted empty profile %s", profile_path)
    return True


# =============================================================================
# Platform lookups
# =============================================================================


def get_profile_path(
    shell: Shell,
    home: Path,
    os_name: PlatformOS,
    user_profile: Path | None = None,
) -> Path | None:
    """Get the startup file the safe-delete block belongs in.

    Args:
        shell: Detected shell
        home: User home directory
        os_name: Current operating system
        user_profile: Windows USERPROFILE directory, if set

    Returns:
        Profile path, or None for an unknown shell
    """
    if shell == "zsh":
        return home / ".zshrc"
    if shell == "bash":
        return home / ".bashrc"
    if shell == "fish":
        return home / ".config" / "fish" / "functions" / "rm.fish"
    if shell == "powershell":
        if os_name == "windows":
            documents = (user_profile or home) / "Documents"
            return documents / "PowerShell" / "Microsoft.PowerShell_profile.ps1"
        return home / ".config" / "powershell" / "Microsoft.PowerShell_profile.ps1"
    return None


def get_safe_delete_info(os_name: PlatformOS) -> SafeDeleteInfo:
    """Get the trash command and install hint for an operating system."""
    if os_name == "macos":
        return SafeDeleteInfo(command="trash", install_hint="brew install trash-cli")
    if os_name == "linux":
        return SafeDeleteInfo(
            command="trash-put",
            install_hint="sudo apt install trash-cli  # or: npm install -g trash-cli",
        )
    return SafeDeleteInfo()


def has_safe_delete(os_name: PlatformOS) -> bool:
    """Check whether a trash facility is available.

    Windows always has the recycle bin; elsewhere the trash command must
    be on PATH.
    """
    if os_name == "windows":
        return True
    info = get_safe_delete_info(os_name)
    return info.command is not None and shutil.which(info.command) is not None


# =============================================================================
# Enable / disable
# =============================================================================

SafeDeleteOutcome = Literal["installed", "already-installed", "unsupported-shell", "missing-trash"]


@dataclass
class SafeDeleteResult:
    """Outcome of enabling safe-delete, with the profile it concerns."""

    outcome: SafeDeleteOutcome
    profile_path: Path | None = None
    install_hint: str | None = None


def enable_safe_delete(
    shell: Shell,
    os_name: PlatformOS,
    home: Path,
    user_profile: Path | None = None,
) -> SafeDeleteResult:
    """Install the safe-delete block for the detected shell, once.

    Args:
        shell: Detected shell
        os_name: Current operating system
        home: User home directory
        user_profile: Windows USERPROFILE directory, if set

    Returns:
        SafeDeleteResult describing what happened
    """
    info = get_safe_delete_info(os_name)
    profile_path = get_profile_path(shell, home, os_name, user_profile)
    block = generate_safe_delete_block(shell, get_sys_platform(os_name), info.command)
    if profile_path is None or block is None:
        return SafeDeleteResult(outcome="unsupported-shell")

    if not has_safe_delete(os_name):
        return SafeDeleteResult(
            outcome="missing-trash",
            profile_path=profile_path,
            install_hint=info.install_hint,
        )

    if is_already_installed(profile_path):
        return SafeDeleteResult(outcome="already-installed", profile_path=profile_path)

    install_to_profile(profile_path, block)
    return SafeDeleteResult(outcome="installed", profile_path=profile_path)


def disable_safe_delete(
    shell: Shell,
    os_name: PlatformOS,
    home: Path,
    user_profile: Path | None = None,
) -> bool:
    """Remove the safe-delete block for the detected shell.

    Returns:
        True if a block was removed
    """
    profile_path = get_profile_path(shell, home, os_name, user_profile)
    if profile_path is None:
        return False
    return remove_from_profile(profile_path)
