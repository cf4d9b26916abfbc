"""
Audit domain layer -- value types, collaborator ports and the clock.

Pure code: no I/O, no database, no clock reads outside ``clock.py``.
"""
