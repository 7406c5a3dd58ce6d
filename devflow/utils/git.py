"""Git repository root discovery."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger("devflow.git")

_UNSAFE_SEQUENCES = ("\n", ";", "&&")


def get_git_root(cwd: Path | None = None) -> Path | None:
    """Get the root directory of the enclosing git repository.

    Output from git is validated before use: values containing shell
    control sequences or that are not absolute paths are rejected.

    Args:
        cwd: Directory to start from (defaults to the current directory)

    Returns:
        Absolute repository root, or None when not inside a repository
    """
    cmd = ["git", "rev-parse", "--show-toplevel"]
    logger.debug("Running git command: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logger.debug("Not in a git repository: %s", e)
        return None

    raw = result.stdout.strip()
    if not raw or any(seq in raw for seq in _UNSAFE_SEQUENCES):
        return None

    root = Path(raw)
    if not root.is_absolute():
        return None
    return root.resolve()
