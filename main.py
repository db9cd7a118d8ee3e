from app import create_app
from config import get_settings
from logging_setup import setup_logging

# Fails fast when DATABASE_URL or SECRET_KEY is missing
settings = get_settings()
setup_logging(settings.log_level)

app = create_app(settings)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        ssl_keyfile=None,  # Add your SSL key file path for HTTPS
        ssl_certfile=None  # Add your SSL cert file path for HTTPS
    )
