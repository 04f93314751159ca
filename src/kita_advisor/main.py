import os

import uvicorn

from kita_advisor.logger import get_logging_config


def run() -> None:
    uvicorn.run(
        "kita_advisor.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    run()
