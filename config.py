import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-this")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///medications.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # sql | json | memory
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sql")
    JSON_STORE_PATH = os.getenv("JSON_STORE_PATH", os.path.join("data", "medications.json"))

    REFILL_THRESHOLD = int(os.getenv("REFILL_THRESHOLD", "7"))
    ADHERENCE_DAYS = int(os.getenv("ADHERENCE_DAYS", "30"))
    HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
