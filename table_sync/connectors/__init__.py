"""
Sync Connectors
===============

Source connectors for the sync engine.
"""

from .mysql_connector import MySQLConnector

__all__ = ["MySQLConnector"]
