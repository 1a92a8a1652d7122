#!/usr/bin/env python3
"""
Run script for the Identity Service API.
This script launches the FastAPI server on the configured host and port.
"""
import uvicorn
import sys
import traceback

from identity_service.config import Settings

if __name__ == "__main__":
    try:
        settings = Settings.from_env()

        # Print information about the server
        print("Starting Identity Service API server...")
        print(f"Access the API at http://{settings.host}:{settings.port}")
        print(f"API documentation at http://{settings.host}:{settings.port}/docs")

        # Run the server
        uvicorn.run(
            "identity_service.main:app",
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower()
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
