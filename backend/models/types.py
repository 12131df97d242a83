"""Shared type definitions for type checking.

Uses NewType for IDs to provide compile-time type safety - prevents mixing
different ID types (e.g., passing UserID where ProductID expected).
"""

from typing import NewType

# ID types using NewType for type safety
UserID = NewType("UserID", str)
ProductID = NewType("ProductID", str)
