"""
Shared ledger core: immutable models and fixed-precision arithmetic.

Everything here is storage- and UI-agnostic; the demo ledger service builds
its executor, valuation and persistence on top of it.
"""
