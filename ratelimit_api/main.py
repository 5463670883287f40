import uvicorn

from ratelimit_api.core.app_factory import create_app
from ratelimit_api.core.config import settings

app = create_app()


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    uvicorn.run(app, host=settings.app.host, port=settings.app.port)


if __name__ == "__main__":
    run()
