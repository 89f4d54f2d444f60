import uvicorn

import config
from utils.logging_config import setup_logging

# Initialize centralized logging configuration
setup_logging()

from app import app

if __name__ == "__main__":
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT, log_config=None)
