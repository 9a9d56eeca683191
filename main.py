# Single source of truth: export the same Flask app object
import logging

import config
from robust_logging import setup_robust_logging

setup_robust_logging()

from app import app  # noqa: E402

logger = logging.getLogger("main")


def main():
    logger.info("🦞 Starting LobsterPad on %s:%s", config.HOST, config.PORT)
    app.run(debug=config.DEBUG_MODE, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
