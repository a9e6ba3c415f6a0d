"""Run the review service under uvicorn.

uvicorn traps SIGINT/SIGTERM and runs the application's lifespan shutdown,
which closes the store connection pool before the process exits.
"""

from __future__ import annotations

import uvicorn

from review_service import config


def main() -> None:
    uvicorn.run(
        "review_service.app:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
