"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (assignment,
notifications, tickets).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add assignment or notification rules to the shared kernel.
"""
