"""Reading, backing up and rewriting ``.env`` files.

Format: one ``KEY=VALUE`` per line, ``#`` comments and blank lines ignored,
split on the first ``=``, key and value trimmed, no quoting support.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from vault_onboarding.migration.exceptions import BackupError, EnvFileError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".vault-migrated."
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass(frozen=True)
class EnvEntry:
    """One variable line of an env file."""

    key: str
    value: str
    line_number: int
    has_separator: bool = True

    def to_line(self) -> str:
        if not self.has_separator:
            return self.key
        return f"{self.key}={self.value}"


def iter_env_entries(path: Union[str, Path]) -> Iterator[EnvEntry]:
    """Stream the entries of ``path`` in file order.

    Raises:
        EnvFileError: If the file cannot be read
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            for line_number, line in enumerate(f, start=1):
                stripped = line.strip()
                if not stripped or stripped.startswith("#"):
                    continue
                if "=" in stripped:
                    key, value = stripped.split("=", 1)
                    yield EnvEntry(key.strip(), value.strip(), line_number)
                else:
                    yield EnvEntry(stripped, "", line_number, has_separator=False)
    except (OSError, UnicodeDecodeError) as e:
        raise EnvFileError(str(path), details={"error": str(e)}) from e


def parse_env_file(path: Union[str, Path]) -> list[EnvEntry]:
    return list(iter_env_entries(path))


def backup_path_for(path: Union[str, Path], now: Optional[datetime] = None) -> Path:
    """``<path>.vault-migrated.YYYYmmdd_HHMMSS``"""
    path = Path(path)
    stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    return path.with_name(f"{path.name}{BACKUP_SUFFIX}{stamp}")


def register_in_gitignore(backup: Path) -> bool:
    """Append ``backup``'s name to a sibling ``.gitignore`` if one exists.

    Returns:
        True if the entry was added
    """
    gitignore = backup.parent / ".gitignore"
    if not gitignore.is_file():
        return False

    existing = gitignore.read_text()
    if backup.name in existing.splitlines():
        return False

    with open(gitignore, "a") as f:
        if existing and not existing.endswith("\n"):
            f.write("\n")
        f.write(f"{backup.name}\n")
    logger.info("Added backup file to .gitignore")
    return True


def create_backup(path: Union[str, Path], now: Optional[datetime] = None) -> Path:
    """Copy ``path`` to a timestamped backup next to it.

    Raises:
        BackupError: If the copy fails
    """
    path = Path(path)
    backup = backup_path_for(path, now)
    logger.info("Creating backup of .env file: %s", backup)
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        raise BackupError(
            f"Failed to back up {path}",
            details={"backup": str(backup), "error": str(e)},
        ) from e

    try:
        register_in_gitignore(backup)
    except OSError as e:
        logger.warning("Could not update .gitignore: %s", e)
    return backup


def render_header(vault_path: str) -> list[str]:
    return [
        "# .env file - Non-secret configuration only",
        f"# Secrets have been migrated to Vault ({vault_path})",
        "# To retrieve secrets, run vault-fetch-secrets with a valid token",
        "",
    ]


def write_filtered_env(
    path: Union[str, Path],
    entries: Iterable[EnvEntry],
    vault_path: str,
) -> None:
    """Atomically replace ``path`` with a header and ``entries`` in order.

    Raises:
        EnvFileError: If the file cannot be written
    """
    path = Path(path)
    lines = render_header(vault_path) + [entry.to_line() for entry in entries]
    content = "\n".join(lines) + "\n"

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise EnvFileError(
            str(path),
            message=f"Failed to update env file: {path}",
            details={"error": str(e)},
        ) from e
    logger.debug("Rewrote %s", path)
