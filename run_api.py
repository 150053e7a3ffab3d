#!/usr/bin/env python3
"""
Script to run the e-library API server.
"""

import uvicorn

from utilities.config import LibraryConfig


def main():
    """Run the API server."""
    config = LibraryConfig()
    print("Starting e-library API server")
    print(f"Host: {config.host}")
    print(f"Port: {config.port}")
    print(f"Environment: {config.environment}")
    print(f"Database: {config.mongodb_database}")
    print("=" * 50)

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=not config.is_production(),
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
