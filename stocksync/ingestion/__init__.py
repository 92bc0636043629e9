"""
Data Ingestion Module
"""
from .csv_reader import read_inventory_csv
from .ftp_client import FTPSource, create_ftp_source, parse_mdtm

__all__ = [
    "read_inventory_csv",
    "FTPSource",
    "create_ftp_source",
    "parse_mdtm",
]
