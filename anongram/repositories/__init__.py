"""
Persistence adapters.

Services depend on the Store rather than on SQLAlchemy sessions; swapping the
engine (in-memory SQLite by default) does not touch any service.
"""
