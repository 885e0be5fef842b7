"""
Core utilities shared across the Anongram API.

This package hosts configuration, the error taxonomy, logging setup, the mail
adapter, hashing helpers and the per-key lock used by the services. Nothing
here imports FastAPI or the storage layer.
"""
