"""
SheetLog - Edge greeting service with Google Sheets request logging

Answers every request with a fixed greeting and, in the background,
appends (timestamp, method, url) to a Google Sheet using a service account.
"""

__version__ = "0.1.0"

from src.sheetlog.main import app

__all__ = ["app"]
