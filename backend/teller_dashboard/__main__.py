import uvicorn

from .config import settings


def main() -> None:
    # uvicorn turns SIGINT/SIGTERM into a lifespan shutdown, which closes the pool.
    uvicorn.run("teller_dashboard.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
