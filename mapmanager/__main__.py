"""Run the API server: ``python -m mapmanager``."""

import uvicorn

from mapmanager.config import settings


def main():
    uvicorn.run("mapmanager.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
