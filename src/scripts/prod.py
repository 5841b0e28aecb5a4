#!/usr/bin/env python3
"""Production server startup script."""

import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


def main():
    import uvicorn

    from common.config import config

    port = int(os.environ.get("PORT", config.port))

    print(f"Starting Service Bus explorer on port {port}...")
    print(f"Logs: {config.log_level} level")
    print(f"Health check: http://0.0.0.0:{port}/health")
    print("-" * 50)

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        workers=1,  # Profiles live in a local SQLite file
        log_level="info",
    )


if __name__ == "__main__":
    main()
