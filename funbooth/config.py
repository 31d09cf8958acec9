from pydantic_settings import BaseSettings
import os


class Settings(BaseSettings):
    app_name: str = "Fun Photobooth"
    app_description: str = "A webcam photobooth with layouts, filters, stickers and themed frames"
    debug: bool = False
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    camera_min_width: int = 640
    camera_min_height: int = 480
    camera_fps: int = 30
    camera_open_attempts: int = 50
    camera_open_interval: float = 0.1
    camera_first_frame_timeout: float = 10.0
    mirror: bool = True

    preview_width: int = 640
    preview_quality: int = 60
    preview_fps: int = 15
    photo_quality: int = 95

    countdown_from: int = 3
    countdown_tick_seconds: float = 1.0
    shot_interval_seconds: float = 1.5

    canvas_width: int = 640
    canvas_height: int = 480
    sticker_base_size: int = 40
    cell_width: int = 300
    cell_height: int = 225
    cell_spacing: int = 10
    frame_border_width: int = 40
    plain_border_width: int = 20

    static_dir: str = os.path.join(os.path.dirname(__file__), "static")
    data_dir: str = "data"
    photos_dir: str = "data/photos"
    database_url: str = "sqlite:///data/photobooth.db"
    upload_url_ttl: int = 3600

    class Config:
        env_file = ".env"
        env_prefix = "FUNBOOTH_"


settings = Settings()
os.makedirs(settings.photos_dir, exist_ok=True)
os.makedirs(settings.static_dir, exist_ok=True)
