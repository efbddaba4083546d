"""Log ingestion service: HTTP API over the durable log store."""

import logging
import sys

from log_ingest.app import create_app
from log_ingest.config import load_config


def main():
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, str(config["logging"]["level"]).upper(), logging.INFO),
        format="%(asctime)s [log-ingest] %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    app = create_app(config)
    server = config["server"]
    logger.info("Log store: %s", config["storage"]["path"])
    logger.info("Listening on http://%s:%d (logs at /logs, stream at /stream)", server["host"], server["port"])
    app.run(host=server["host"], port=server["port"], debug=server["debug"], threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
