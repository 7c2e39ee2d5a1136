#!/usr/bin/env python3
"""
Simple script to run the FastAPI server programmatically
"""
import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "eod_backend.fastapi.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENV_MODE", "dev") == "dev",
        log_level="info"
    )
