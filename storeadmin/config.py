# storeadmin/config.py

"""
Runtime configuration.
Values come from the environment (a .env file is loaded first), so the same
code runs against the hosted backend or a local SQLite file.
"""

import os
from typing import Optional
from pydantic import BaseModel
from dotenv import load_dotenv


# Load the environment variables
load_dotenv()

# Build paths inside the project like this: os.path.join(BASE_DIR, ...)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class Config(BaseModel):
    database_url: str = f"sqlite:///{os.path.join(BASE_DIR, 'database.db')}"
    storage_dir: str = os.path.join(BASE_DIR, "storage")
    storage_public_url: str = "http://localhost:8000/storage/v1"
    storage_bucket: str = "storeadmin"
    state_file: str = os.path.join(BASE_DIR, "state.json")
    poll_interval: float = 10.0
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    log_level: str = "INFO"


def load_config() -> Config:
    """Read the config from the environment, falling back to the defaults above"""
    env = {
        "database_url": os.getenv("DATABASE_URL"),
        "storage_dir": os.getenv("STORAGE_DIR"),
        "storage_public_url": os.getenv("STORAGE_PUBLIC_URL"),
        "storage_bucket": os.getenv("STORAGE_BUCKET"),
        "state_file": os.getenv("STATE_FILE"),
        "poll_interval": os.getenv("POLL_INTERVAL"),
        "admin_email": os.getenv("ADMIN_EMAIL"),
        "admin_password": os.getenv("ADMIN_PASSWORD"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    return Config(**{k: v for k, v in env.items() if v is not None})
