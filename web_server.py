"""Web server entry point for the QueueTicket document server"""

import sys
from pathlib import Path

import uvicorn

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

# Load environment variables from .env file BEFORE importing anything else
from dotenv import load_dotenv
load_dotenv()

from qticket.utils.config import config_manager
from qticket.utils.logger import setup_logger
from web.main import app


if __name__ == "__main__":
    settings = config_manager.settings
    log_cfg = settings.logging
    setup_logger(
        log_level=log_cfg.level,
        log_format=log_cfg.format,
        file_path=log_cfg.file_path,
        max_bytes=log_cfg.max_bytes,
        backup_count=log_cfg.backup_count,
    )

    host = settings.server.host
    port = settings.server.port
    print("Starting QueueTicket server...")
    print(f"Local server will be available at: http://localhost:{port}")
    print(f"Auth file: {settings.server.auth_path()}")
    print(f"Backup directory: {settings.server.backup_path()}")
    print()

    try:
        uvicorn.run(app, host=host, port=port, reload=False)
    except KeyboardInterrupt:
        print("\nShutting down...")
