"""Anongram backend: email-code auth, users, professions, chat and realtime presence."""

__version__ = "0.3.0"


def create_app(*args, **kwargs):
    """Factory usable by uvicorn (``uvicorn anongram:create_app --factory``)."""
    from anongram.app import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = ["create_app", "__version__"]
