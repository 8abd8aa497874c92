import uvicorn

from boutique.core.config import settings


def main() -> None:
    uvicorn.run("boutique.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
