"""
ITSM Service Core
=================

Multi-tenant IT Service Management backend.

Bounded contexts:
- assignment: least-busy agent auto-assignment across ticket categories
- notifications: email account routing per notification type, delivery adapters
- tickets: ticket intake workflow (auto-assign, persist, notify)
"""

__version__ = "1.0.0"
