"""Database query functions for Review Engine.

Each module groups async functions for one entity. Functions take an
AsyncSession and only add, flush, or delete; the caller owns the
transaction so a whole review operation commits or rolls back as one unit.
"""
