"""Cache tier implementations.

Provides the in-memory tier (L1), the file-based tier (L2) and the key
derivation policies shared by both.
Bounded Context: Cache Management
"""
