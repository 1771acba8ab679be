"""GPG-based signing through rpmsign and gpg.

Without a passphrase the tools run non-interactively against a gpg-agent
that already holds the unlocked key. With a passphrase they are driven by
an expect script that answers the passphrase prompt and exits with the
tool's own status.
"""

import os
from pathlib import Path
from typing import List, Optional

from ..common.config import ToolsConfig
from ..common.errors import ExternalToolError
from ..common.logger import get_logger
from ..common.process import run_tool
from .base import Signer

logger = get_logger("signing")

PASSPHRASE_ENV = "S3RPM_SIGN_PASSPHRASE"
PROMPT_TIMEOUT = 60

_TCL_SPECIAL = set('\\$[]{}"; \t')

EXPECT_TEMPLATE = """\
set timeout {timeout}
spawn {command}
expect {{
    -re "Enter pass ?phrase" {{ send -- "$env({env_var})\\r" }}
    timeout {{ puts stderr "no passphrase prompt"; exit 1 }}
    eof {{ puts stderr "tool exited before prompting for a passphrase"; exit 1 }}
}}
expect eof
lassign [wait] _ _ _ code
exit $code
"""


def tcl_quote(arg: str) -> str:
    """Quote one argument for a Tcl command line."""
    quoted = []
    for char in arg:
        if char == "\n":
            quoted.append("\\n")
        elif char in _TCL_SPECIAL:
            quoted.append("\\" + char)
        else:
            quoted.append(char)
    return "".join(quoted)


def expect_script(command: List[str], timeout: int = PROMPT_TIMEOUT) -> str:
    """Render an expect script that answers one passphrase prompt.

    The passphrase is read from the environment, never embedded.
    """
    return EXPECT_TEMPLATE.format(
        timeout=timeout,
        command=" ".join(tcl_quote(arg) for arg in command),
        env_var=PASSPHRASE_ENV,
    )


class GpgSigner(Signer):
    """Signer using rpm/rpmsign for packages and gpg for manifests."""

    def __init__(self, tools: Optional[ToolsConfig] = None, key_id: Optional[str] = None):
        """Initialize signer.

        Args:
            tools: Tool locations and timeout
            key_id: Optional signing key; the tools' default key when None
        """
        self.tools = tools or ToolsConfig()
        self.key_id = key_id

    def _rpm_key_args(self) -> List[str]:
        if not self.key_id:
            return []
        return ["--define", f"_gpg_name {self.key_id}"]

    def _gpg_key_args(self) -> List[str]:
        if not self.key_id:
            return []
        return ["--local-user", self.key_id]

    def package_command(self, path: Path, passphrase: Optional[str] = None) -> List[str]:
        if passphrase:
            return [self.tools.rpmsign, *self._rpm_key_args(), "--addsign", str(path)]
        return [self.tools.rpm, *self._rpm_key_args(), "--addsign", str(path)]

    def manifest_command(self, manifest_path: Path, passphrase: Optional[str] = None) -> List[str]:
        if passphrase:
            return [
                self.tools.gpg,
                "--pinentry-mode", "loopback",
                "--yes",
                *self._gpg_key_args(),
                "--detach-sign", "--armor",
                str(manifest_path),
            ]
        return [
            self.tools.gpg,
            "--batch", "--yes",
            *self._gpg_key_args(),
            "--detach-sign", "--armor",
            str(manifest_path),
        ]

    def _run(self, command: List[str], passphrase: Optional[str]) -> None:
        if not passphrase:
            run_tool(command, timeout=self.tools.timeout)
            return

        env = dict(os.environ)
        env[PASSPHRASE_ENV] = passphrase
        script = expect_script(command)
        try:
            run_tool([self.tools.expect, "-c", script], timeout=self.tools.timeout, env=env)
        except ExternalToolError as e:
            # Report the wrapped tool, not the expect wrapper
            raise ExternalToolError(command, e.returncode, e.stderr, e.reason) from e

    def sign_package(self, path: Path, passphrase: Optional[str] = None) -> None:
        mode = "interactive passphrase" if passphrase else "agent"
        logger.info(f"Signing {path} ({mode})")
        self._run(self.package_command(path, passphrase), passphrase)

    def sign_manifest(self, manifest_path: Path, passphrase: Optional[str] = None) -> Path:
        mode = "interactive passphrase" if passphrase else "agent"
        logger.info(f"Signing {manifest_path} ({mode})")
        command = self.manifest_command(manifest_path, passphrase)
        self._run(command, passphrase)

        signature = manifest_path.with_name(manifest_path.name + ".asc")
        if not signature.is_file():
            raise ExternalToolError(command, 0, reason=f"did not produce {signature}")
        return signature
