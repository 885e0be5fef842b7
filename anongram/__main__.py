"""Run the API with uvicorn: ``python -m anongram``."""
from __future__ import annotations

import uvicorn

from anongram.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("anongram.app:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
