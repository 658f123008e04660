from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    appwrite_endpoint: str = os.getenv("APPWRITE_ENDPOINT", "")
    appwrite_project_id: str = os.getenv("APPWRITE_PROJECT_ID", "")
    appwrite_api_key: str = os.getenv("APPWRITE_API_KEY", "")
    appwrite_database_id: str = os.getenv("APPWRITE_DATABASE_ID", "")

    appwrite_homework_collection_id: str = os.getenv("APPWRITE_HOMEWORK_COLLECTION_ID", "homework")
    appwrite_calendar_events_collection_id: str = os.getenv(
        "APPWRITE_CALENDAR_EVENTS_COLLECTION_ID", "calendar_events"
    )
    appwrite_grades_collection_id: str = os.getenv("APPWRITE_GRADES_COLLECTION_ID", "grades")
    appwrite_timetable_collection_id: str = os.getenv("APPWRITE_TIMETABLE_COLLECTION_ID", "timetable")

    cors_allowed_origins: tuple[str, ...] = _split_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )
    log_level: str = os.getenv("STUDYTRACK_LOG_LEVEL", "INFO").upper()


settings = Settings()
