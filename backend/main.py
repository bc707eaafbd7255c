import uvicorn
import os

if __name__ == "__main__":
    # reload only in development
    is_dev = os.getenv("ENV", "development") == "development"

    uvicorn.run(
        "tradewiser.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
        reload=is_dev,
        log_level="info"
    )
