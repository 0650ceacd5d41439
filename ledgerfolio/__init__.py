# ledgerfolio/__init__.py
"""ledgerfolio: portfolio valuation engine over an investment operation ledger."""

__version__ = "0.1.0"
