import os
from typing import Optional

from pydantic import BaseModel


class AppConfig(BaseModel):
    event_store_driver: str = "memory"
    event_store_dir: str = "/tmp/roomsched-events"
    directory_path: str = "app/data/sample_home.json"
    push_driver: str = "console"
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    expo_access_token: Optional[str] = None
    push_timeout_seconds: float = 15.0
    home_route: str = "My Home"
    api_key: Optional[str] = None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config() -> AppConfig:
    return AppConfig(
        event_store_driver=os.getenv("EVENT_STORE_DRIVER", "memory").lower(),
        event_store_dir=os.getenv("EVENT_STORE_DIR", "/tmp/roomsched-events"),
        directory_path=os.getenv("DIRECTORY_PATH", "app/data/sample_home.json"),
        push_driver=os.getenv("PUSH_DRIVER", "console").lower(),
        expo_push_url=os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send"),
        expo_access_token=os.getenv("EXPO_ACCESS_TOKEN"),
        push_timeout_seconds=_float_env("PUSH_TIMEOUT_SECONDS", 15.0),
        home_route=os.getenv("HOME_ROUTE", "My Home"),
        api_key=os.getenv("API_KEY"),
    )
