import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from hostprobe.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EvidenceReader:
    """
    Best-effort access to files, kernel interfaces and helper commands.

    Every path is resolved against ``root`` so that a host filesystem mounted
    somewhere else (or a fake tree in tests) can be inspected. A source that is
    missing or unreadable yields None / False and is only logged at DEBUG.
    """

    def __init__(
        self,
        root: str = "/",
        detect_virt_command: Optional[Sequence[str]] = None,
        command_timeout: float = 2.0,
    ) -> None:
        self._root = Path(root)
        self._detect_virt_command = list(detect_virt_command or [])
        self._command_timeout = command_timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EvidenceReader":
        settings = settings or get_settings()
        return cls(
            root=settings.root_path,
            detect_virt_command=settings.detect_virt_command,
            command_timeout=settings.command_timeout_seconds,
        )

    @property
    def root(self) -> Path:
        return self._root

    def path(self, source: str) -> Path:
        return self._root / source.lstrip("/")

    def exists(self, source: str) -> bool:
        try:
            return self.path(source).exists()
        except OSError:
            return False

    def read_bytes(self, source: str) -> Optional[bytes]:
        try:
            return self.path(source).read_bytes()
        except OSError as exc:
            logger.debug("Evidence %s unavailable: %s", source, exc)
            return None

    def read_text(self, source: str) -> Optional[str]:
        data = self.read_bytes(source)
        if data is None:
            return None
        return data.decode("utf-8", errors="replace")

    def read_line(self, source: str) -> Optional[str]:
        """Return the first line of a source, stripped; None if missing or blank."""
        text = self.read_text(source)
        if text is None:
            return None
        lines = text.splitlines()
        if not lines:
            return None
        value = lines[0].replace("\x00", "").strip()
        return value or None

    def read_first_line(self, sources: Sequence[str]) -> Optional[str]:
        """Return the first non-empty line among several candidate sources."""
        for source in sources:
            value = self.read_line(source)
            if value:
                return value
        return None

    def glob_line(self, pattern: str) -> Optional[str]:
        """Return the first non-empty line of the first readable match of a glob."""
        try:
            matches = sorted(self._root.glob(pattern.lstrip("/")))
        except (OSError, ValueError) as exc:
            logger.debug("Glob %s failed: %s", pattern, exc)
            return None

        for match in matches:
            value = self.read_line("/" + str(match.relative_to(self._root)))
            if value:
                return value
        return None

    def detect_virt(self) -> Optional[str]:
        """
        Ask the external detection helper for a virtualization technology name.

        Returns the lower-cased first token of its output, or None when the
        helper is disabled, missing, fails, times out or prints nothing.
        """
        if not self._detect_virt_command:
            return None

        try:
            result = subprocess.run(
                self._detect_virt_command,
                check=False,  # "none" wird mit Exit-Code 1 gemeldet
                capture_output=True,
                text=True,
                timeout=self._command_timeout,
            )
        except FileNotFoundError:
            logger.debug("Detection helper %s not installed", self._detect_virt_command[0])
            return None
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("Detection helper %s failed: %s", self._detect_virt_command[0], exc)
            return None

        tokens = result.stdout.split()
        if result.returncode != 0 or not tokens:
            logger.debug(
                "Detection helper returned code %s with output %r",
                result.returncode,
                result.stdout,
            )
            return None

        return tokens[0].lower()
