"""Entry: start API server; the playback sync thread starts with the app."""
import logging

import uvicorn

from nowplaying.config import API_HOST, API_PORT, LOG_FORMAT, LOG_LEVEL


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    uvicorn.run(
        "nowplaying.api.app:app",
        host=API_HOST,
        port=API_PORT,
        # One worker: the engine and its cache live in this process
        workers=1,
    )


if __name__ == "__main__":
    main()
