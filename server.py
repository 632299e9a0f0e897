from __future__ import annotations

import os

import uvicorn


if __name__ == "__main__":
    host = os.getenv("CADENCE_HOST", "127.0.0.1")
    port = int(os.getenv("CADENCE_PORT", os.getenv("PORT", "8000")))
    uvicorn.run(
        "src.cadence.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=os.getenv("CADENCE_RELOAD", "0") == "1",
    )
