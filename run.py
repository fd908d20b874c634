#!/usr/bin/env python3
"""
Prize House Entry Point

Starts the FastAPI server for the classroom reward-points kiosk.
"""

import sys

from prize_house.api import run_server
from prize_house.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🎁 Starting Prize House kiosk...")
    print(f"💾 Storage: {config.storage_backend} ({config.database_path})")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()
    
    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Prize House...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
