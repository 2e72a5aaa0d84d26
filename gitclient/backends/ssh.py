"""
Materialise an SSH identity for the duration of one operation.

The key material is written to a private temporary directory (mode 0600) and
removed when the operation finishes, whatever its outcome.
"""

import logging
import os
import shlex
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from gitclient.config import get_ssh_command
from gitclient.credentials import Credential

logger = logging.getLogger(__name__)

PASSPHRASE_ENV = "GITCLIENT_SSH_PASSPHRASE"

_ASKPASS_SCRIPT = f"""#!/bin/sh
printf '%s\\n' "${PASSPHRASE_ENV}"
"""


@dataclass
class SshIdentity:
    username: str
    key_file: Path
    askpass: Optional[Path] = None
    passphrase: Optional[str] = None

    def git_environment(
        self, url_has_user: bool = False, ssh_command: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Environment variables making the git executable use this identity.

        Args:
            url_has_user: The remote URL names the login user ("-l" would
                take precedence over it)
            ssh_command: ssh executable and options, defaults to the configured one

        Returns:
            Variables to merge into the git process environment
        """
        command = shlex.split(ssh_command or get_ssh_command())
        command += [
            "-i",
            str(self.key_file),
            "-o",
            "IdentitiesOnly=yes",
            "-o",
            "StrictHostKeyChecking=accept-new",
        ]
        if self.username and not url_has_user:
            command += ["-l", self.username]
        env = {"GIT_SSH_COMMAND": " ".join(shlex.quote(part) for part in command)}
        if self.askpass is not None and self.passphrase is not None:
            env.update(
                {
                    "SSH_ASKPASS": str(self.askpass),
                    "SSH_ASKPASS_REQUIRE": "force",
                    "DISPLAY": os.environ.get("DISPLAY", ":0"),
                    PASSPHRASE_ENV: self.passphrase,
                }
            )
        else:
            env["GIT_SSH_COMMAND"] += " -o BatchMode=yes"
        return env


def _write_private(path: Path, content: str, mode: int) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    with os.fdopen(fd, "w") as f:
        f.write(content)
        if not content.endswith("\n"):
            f.write("\n")


@contextmanager
def ssh_identity(credential: Credential) -> Iterator[SshIdentity]:
    """
    Write a credential's private key to disk for the duration of the block.

    Args:
        credential: Credential carrying the private key

    Yields:
        SshIdentity with the key file (and askpass helper when the key has a
        passphrase)
    """
    with tempfile.TemporaryDirectory(prefix="gitclient-ssh-") as tmp:
        tmp_dir = Path(tmp)
        key_file = tmp_dir / "id_key"
        _write_private(key_file, credential.private_key, stat.S_IRUSR | stat.S_IWUSR)

        askpass = None
        if credential.passphrase is not None:
            askpass = tmp_dir / "askpass.sh"
            _write_private(askpass, _ASKPASS_SCRIPT, stat.S_IRWXU)

        logger.debug(f"Using SSH identity '{credential.id}' for {credential.username}")
        yield SshIdentity(
            username=credential.username,
            key_file=key_file,
            askpass=askpass,
            passphrase=credential.passphrase,
        )
