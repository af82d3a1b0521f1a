import uvicorn

from chart_pipeline import settings
from chart_pipeline.main import app


def main():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
