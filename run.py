import logging

from skillswap import create_app
from skillswap.config import Config

# Create Flask app instance
app = create_app()

logger = logging.getLogger("skillswap.run")

if __name__ == '__main__':
    logger.info("Running in %s mode on port %s", Config.ENVIRONMENT, Config.PORT)
    logger.info("Debug mode is %s", 'on' if Config.DEBUG else 'off')
    app.run(host="0.0.0.0", port=Config.PORT, debug=Config.DEBUG)
