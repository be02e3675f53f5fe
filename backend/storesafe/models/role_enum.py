"""
Role Enumeration Module
=======================

Defines all valid roles in the system.

Security Purpose:
- Prevents arbitrary role injection
- Prevents frontend role manipulation
- Enforces strict backend validation
"""

from enum import Enum


class Role(str, Enum):
    """
    System-wide allowed roles.

    `pending` is assigned to invited users until an admin grants access.
    """

    ADMIN = "admin"
    OPS = "ops"
    READONLY = "readonly"
    CLIENT = "client"
    PENDING = "pending"
