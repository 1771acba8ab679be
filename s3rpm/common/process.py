"""Running external tools.

All external tools are invoked through run_tool so that failures surface
uniformly as ExternalToolError. There is no retry: a failed tool aborts
the run.
"""

import subprocess
from typing import Dict, List, Optional

from .errors import ExternalToolError
from .logger import get_logger

logger = get_logger("process")


def _decode(output: Optional[bytes]) -> str:
    if not output:
        return ""
    return output.decode(errors="replace")


def run_tool(
    cmd: List[str],
    timeout: Optional[int] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run an external tool and fail on a non-zero exit.

    Args:
        cmd: Command and arguments
        timeout: Optional timeout in seconds
        env: Optional environment for the child process

    Returns:
        CompletedProcess result

    Raises:
        ExternalToolError: If the tool is missing, times out, or exits non-zero
    """
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            timeout=timeout,
            check=False,
            env=env,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(cmd, reason="not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(
            cmd, stderr=_decode(e.stderr), reason=f"timed out after {timeout}s"
        ) from e

    if result.returncode != 0:
        raise ExternalToolError(cmd, result.returncode, _decode(result.stderr))

    return result
