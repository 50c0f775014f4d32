"""
Core domain models, numerical primitives, errors and contracts.

Independent of external systems (catalog storage, transaction backend).
"""
