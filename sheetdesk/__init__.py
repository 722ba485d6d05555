"""SheetDesk: a record store backed by Google Sheets and Google Drive."""

__version__ = "0.3.0"
