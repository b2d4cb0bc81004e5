import logging

import uvicorn

from missionstore.config import settings, setup_logging


def main():
    setup_logging(settings.log_level, settings.log_file)
    logging.info("Serving mission store on %s:%s", settings.api_host, settings.api_port)
    uvicorn.run(
        "missionstore.api.api_main:create_app",
        host=settings.api_host,
        port=settings.api_port,
        factory=True,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logging.info("Program terminated")
