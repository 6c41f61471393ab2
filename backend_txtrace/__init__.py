"""
Backend TxTrace: transaction trace reconstruction and diagnostics for Solana.

Takes one already-fetched transaction record and explains it: an ordered,
depth-tagged CPI trace, classified failure diagnostics with remediation
hints, and compute/fee efficiency metrics. Pure and synchronous; fetching,
caching and presentation live outside this package.
"""

__version__ = "0.1.0"
