"""
Banking Engine

Replays batches of banking commands against an in-memory ledger of users,
accounts and cards, with multi-currency conversion and per-command
transaction history.
"""

__version__ = "1.0.0"
