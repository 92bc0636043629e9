"""
FTP Feed Source

Fetches the inventory export from the supplier FTP server:
- Remote modification time (MDTM) for the sync watermark check
- Binary download into the local staging directory

ftplib is blocking, so every transfer runs in a worker thread and the
request handler only awaits it.
"""

import asyncio
import ftplib
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import structlog

from stocksync.config.settings import FTPSettings
from stocksync.exceptions import TransferError


def parse_mdtm(response: str) -> datetime:
    """
    Parse an MDTM reply into an aware UTC datetime.

    Servers answer "213 YYYYMMDDHHMMSS" with optional fractional seconds.

    Raises:
        ValueError: If the reply does not carry a timestamp
    """
    parts = response.strip().split()
    if len(parts) < 2 or not parts[0].startswith("213"):
        raise ValueError(f"Unexpected MDTM response: {response!r}")
    stamp = parts[-1].split(".")[0]
    return datetime.strptime(stamp, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)


class FTPSource:
    """
    Inventory feed on an FTP server.

    Example:
        source = FTPSource.from_settings(settings.ftp)
        modified = await source.get_modified_time("Inventory.csv")
        await source.download("Inventory.csv", Path("/tmp/Inventory.csv"))
    """

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        port: int = 21,
        secure: bool = False,
        timeout: int = 30,
        logger=None,
    ):
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.secure = secure
        self.timeout = timeout
        self.log = logger or structlog.get_logger(__name__)

    @classmethod
    def from_settings(cls, ftp_settings: FTPSettings, logger=None) -> "FTPSource":
        missing = ftp_settings.missing()
        if missing:
            raise TransferError(f"FTP source not configured, missing: {', '.join(missing)}")
        return cls(
            host=ftp_settings.host,
            user=ftp_settings.user,
            password=ftp_settings.password.get_secret_value(),
            port=ftp_settings.port,
            secure=ftp_settings.secure,
            timeout=ftp_settings.timeout,
            logger=logger,
        )

    def _connect(self) -> ftplib.FTP:
        client = ftplib.FTP_TLS() if self.secure else ftplib.FTP()
        client.connect(self.host, self.port, timeout=self.timeout)
        client.login(self.user, self.password)
        if self.secure:
            client.prot_p()
        return client

    def _modified_time(self, remote_path: str) -> datetime:
        with self._connect() as client:
            return parse_mdtm(client.voidcmd(f"MDTM {remote_path}"))

    def _download(self, remote_path: str, local_path: Path) -> int:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as client:
            with open(local_path, "wb") as fh:
                client.retrbinary(f"RETR {remote_path}", fh.write)
        return local_path.stat().st_size

    async def get_modified_time(self, remote_path: str) -> datetime:
        """
        Last-modified timestamp of the remote file.

        Raises:
            TransferError: On connection, auth, timeout or protocol failure
        """
        try:
            modified = await asyncio.to_thread(self._modified_time, remote_path)
        except (*ftplib.all_errors, ValueError) as e:
            self.log.error("FTP modification time lookup failed", host=self.host, path=remote_path, error=str(e))
            raise TransferError(f"Could not read modification time of {remote_path}: {e}") from e

        self.log.info("Remote feed modification time", path=remote_path, modified=modified.isoformat())
        return modified

    async def download(self, remote_path: str, local_path: Union[str, Path]) -> Path:
        """
        Download the remote file to the staging path.

        Raises:
            TransferError: On connection, auth, timeout or protocol failure
        """
        local_path = Path(local_path)
        self.log.info("Downloading feed", host=self.host, path=remote_path, target=str(local_path))

        try:
            size = await asyncio.to_thread(self._download, remote_path, local_path)
        except ftplib.all_errors as e:
            self.log.error("FTP download failed", host=self.host, path=remote_path, error=str(e))
            raise TransferError(f"Could not download {remote_path}: {e}") from e

        self.log.info("Feed downloaded", target=str(local_path), bytes=size)
        return local_path


def create_ftp_source(ftp_settings: Optional[FTPSettings] = None, logger=None) -> FTPSource:
    """Create an FTPSource from the configured FTP_* settings"""
    from stocksync.config import get_settings

    return FTPSource.from_settings(ftp_settings or get_settings().ftp, logger=logger)
