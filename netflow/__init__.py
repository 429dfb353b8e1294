"""
Exchange netflow monitor.

Watches ERC-20 Transfer logs of a single token and keeps a running
inflow/outflow aggregate for a set of exchange-controlled addresses.
"""

__version__ = "0.1.0"
