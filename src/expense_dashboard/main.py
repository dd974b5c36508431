import os

import uvicorn

from expense_dashboard.app import create_app
from expense_dashboard.logger import get_logging_config

app = create_app()


def run() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host=host, port=port, log_config=get_logging_config())


if __name__ == "__main__":
    run()
