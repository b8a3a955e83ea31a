"""Run the server with Uvicorn on ``$PORT``."""

import uvicorn

from ..config import Config


def main() -> None:
    config = Config.from_env()
    uvicorn.run("coderoom.api:app", host="0.0.0.0", port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
