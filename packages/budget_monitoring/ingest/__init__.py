"""Bulk spreadsheet import: tokenize, classify, map and persist rows."""
