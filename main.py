import uvicorn

from vroom.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    config = uvicorn.Config(
        "vroom.api.server:app",
        host="0.0.0.0",
        port=3001,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEV_MODE,
        env_file=".env",
    )
    server = uvicorn.Server(config)
    server.run()
