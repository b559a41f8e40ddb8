"""
BFT Manifest - declarative schemas for big flat report tables.

This package lets an author describe normalized entities, their metrics
and the relationships joining them, declare how each metric behaves on
foreign rows, validate that description, and estimate how many rows a
flattened report table will contain without executing any query.
"""

__version__ = "0.1.0"
