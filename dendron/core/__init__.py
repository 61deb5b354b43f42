"""
Dendron Core Package

Engine composition and registration, factor resolution, content identity
(hash, reference, stamp, short code) and method resolution.

Architecture Invariants:
- At most one engine type per canonical name (registry is append-only)
- Root engines are read-only templates
- Identity hashing is a pure, order-sensitive function of the factors
- A reference, once set, never changes for the life of the instance
- Operations report failure through diagnostics plus a failure Result, never by raising
"""

__version__ = "1.0.0"
