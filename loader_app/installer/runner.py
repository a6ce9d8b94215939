"""
Every host mutation the installer performs goes through CommandRunner, so
a dry run can list what would happen without changing anything.
"""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
import zipfile
from datetime import datetime
from typing import List, Mapping, Optional, Sequence

import requests

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """An external command exited non-zero"""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{self.command_line} exited with status {returncode}")

    @property
    def command_line(self) -> str:
        return shlex.join(self.args_list)


class CommandRunner:
    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self.history: List[List[str]] = []
        self.written_files: List[str] = []

    def which(self, executable: str) -> Optional[str]:
        return shutil.which(executable)

    def run(
        self,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        check: bool = True,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        capture: bool = False,
    ) -> subprocess.CompletedProcess:
        args = list(args)
        self.history.append(args)

        if self.dry_run:
            found = "found" if self.which(args[0]) else "NOT FOUND"
            logger.info("would run: %s  (%s %s)", shlex.join(args), args[0], found)
            return subprocess.CompletedProcess(args, 0, "", "")

        logger.debug("running: %s", shlex.join(args))
        full_env = None
        if env:
            full_env = {**os.environ, **env}
        result = subprocess.run(
            args,
            input=input,
            env=full_env,
            cwd=cwd,
            text=True,
            capture_output=capture or input is not None,
            check=False,
        )
        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stderr or "")
        return result

    def succeeds(self, args: Sequence[str], **kwargs) -> bool:
        """True when the command exits 0; a missing executable counts as failure"""
        try:
            return self.run(args, check=False, capture=True, **kwargs).returncode == 0
        except OSError as e:
            logger.warning("Could not run %s: %s", args[0], e)
            return False

    def output(self, args: Sequence[str]) -> str:
        try:
            return self.run(args, check=False, capture=True).stdout or ""
        except OSError as e:
            logger.warning("Could not run %s: %s", args[0], e)
            return ""

    def missing_executables(self) -> List[str]:
        """Executables used so far that are not on PATH"""
        seen = []
        for args in self.history:
            if args[0] not in seen and not self.which(args[0]):
                seen.append(args[0])
        return seen

    # Files

    def makedirs(self, path: str, mode: int = 0o755) -> None:
        if self.dry_run:
            logger.info("would create directory %s", path)
            return
        os.makedirs(path, mode=mode, exist_ok=True)

    def backup_file(self, path: str) -> Optional[str]:
        """Copy an existing file to <path>.bak.<timestamp> before it is replaced"""
        if not os.path.isfile(path):
            return None
        backup = f"{path}.bak.{datetime.now():%Y%m%d-%H%M%S}"
        if self.dry_run:
            logger.info("would back up %s to %s", path, backup)
            return backup
        shutil.copy2(path, backup)
        return backup

    def write_file(self, path: str, content: str, mode: int = 0o644, owner: Optional[str] = None) -> None:
        self.written_files.append(path)
        if self.dry_run:
            logger.info("would write %s (mode %o%s)", path, mode, f", owner {owner}" if owner else "")
            return

        # Create with the final mode so secrets are never world readable
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.chmod(path, mode)
        if owner:
            shutil.chown(path, user=owner, group=owner)

    # Downloads

    def download(self, url: str, dest: str, timeout: int = 60) -> None:
        if self.dry_run:
            logger.info("would download %s to %s", url, dest)
            return
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as fh:
                for chunk in response.iter_content(chunk_size=65536):
                    fh.write(chunk)

    def extract_zip(self, archive: str) -> str:
        """
        Extract to a temporary directory and return the source root: the
        single top-level directory when the archive has one.
        """
        if self.dry_run:
            logger.info("would extract %s", archive)
            return tempfile.gettempdir()
        target = tempfile.mkdtemp(prefix="loader-src-")
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(target)
        entries = os.listdir(target)
        if len(entries) == 1 and os.path.isdir(os.path.join(target, entries[0])):
            return os.path.join(target, entries[0])
        return target
