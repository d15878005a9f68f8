"""
Protocol source adapters.

Each adapter implements the SourceAdapter interface and turns one pool into
a normalized ScrapedRecord.
"""
