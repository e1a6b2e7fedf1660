"""Entrypoint: run the Archive RAG Engine server."""

import uvicorn

from archive_rag.api.app import create_app
from archive_rag.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
