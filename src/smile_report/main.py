"""Entrypoint: run the smile report server."""

import uvicorn

from smile_report.api.app import create_app
from smile_report.config.settings import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
