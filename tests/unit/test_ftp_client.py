"""
Unit Tests - FTP Feed Source
"""
import ftplib

import pytest

from stocksync.exceptions import TransferError
from stocksync.ingestion.ftp_client import FTPSource


class FakeFTP:
    """Minimal ftplib.FTP double used as a context manager"""

    def __init__(self, mdtm_reply="213 20250115083000", content=b"SKU\nA-1\n", retr_error=None):
        self.mdtm_reply = mdtm_reply
        self.content = content
        self.retr_error = retr_error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def voidcmd(self, command):
        if isinstance(self.mdtm_reply, Exception):
            raise self.mdtm_reply
        return self.mdtm_reply

    def retrbinary(self, command, callback):
        if self.retr_error is not None:
            raise self.retr_error
        callback(self.content)


@pytest.fixture
def source():
    return FTPSource(host="ftp.example.com", user="inventory", password="secret")


class TestFTPSource:
    """Tests for FTPSource transfer error handling"""

    async def test_modified_time(self, source, monkeypatch):
        monkeypatch.setattr(source, "_connect", lambda: FakeFTP())

        modified = await source.get_modified_time("Inventory.csv")

        assert modified.isoformat() == "2025-01-15T08:30:00+00:00"

    async def test_login_failure_raises_transfer_error(self, source, monkeypatch):
        def refuse():
            raise ftplib.error_perm("530 Login incorrect.")

        monkeypatch.setattr(source, "_connect", refuse)

        with pytest.raises(TransferError, match="530"):
            await source.get_modified_time("Inventory.csv")

    async def test_connection_refused_raises_transfer_error(self, source, monkeypatch):
        def refuse():
            raise ConnectionRefusedError("Connection refused")

        monkeypatch.setattr(source, "_connect", refuse)

        with pytest.raises(TransferError):
            await source.get_modified_time("Inventory.csv")

    async def test_missing_file_raises_transfer_error(self, source, monkeypatch):
        client = FakeFTP(mdtm_reply=ftplib.error_perm("550 Inventory.csv: No such file"))
        monkeypatch.setattr(source, "_connect", lambda: client)

        with pytest.raises(TransferError, match="550"):
            await source.get_modified_time("Inventory.csv")

    async def test_download(self, source, monkeypatch, tmp_path):
        monkeypatch.setattr(source, "_connect", lambda: FakeFTP(content=b"SKU\nA-1\n"))

        path = await source.download("Inventory.csv", tmp_path / "staging" / "Inventory.csv")

        assert path.read_bytes() == b"SKU\nA-1\n"

    async def test_download_timeout_raises_transfer_error(self, source, monkeypatch, tmp_path):
        client = FakeFTP(retr_error=TimeoutError("timed out"))
        monkeypatch.setattr(source, "_connect", lambda: client)

        with pytest.raises(TransferError, match="timed out"):
            await source.download("Inventory.csv", tmp_path / "Inventory.csv")
