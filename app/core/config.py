from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional
import os


load_dotenv()


class Settings(BaseSettings):
    app_name: str = "AyuTrace API"
    debug: bool = False
    database_url: str = ""
    host: str = "127.0.0.1"
    port: int = 8000
    secret_key: str = ""
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 7
    allowed_hosts: str = ""
    static_dir: Path = Path(__file__).parent.parent.parent / "static"
    public_url: str = "http://localhost:8000"
    log_file: str = "logs/application.log"

    # External notary (blockchain) service
    notary_base_url: Optional[str] = None
    notary_timeout: float = 10.0
    notary_network_id: str = "ayutrace-chain-32343"
    notary_gas_limit: int = 180000

    # Reverse geocoding for notary payloads
    enable_reverse_geocoding: bool = False
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_timeout: float = 5.0

    # When True, QR snapshots sent by clients are re-checked against stored QR codes
    verify_qr_snapshots: bool = False

    max_upload_size: int = 10 * 1024 * 1024

    super_admin_email: str = "superadmin@ayutrace.local"
    super_admin_password: str = ""


settings = Settings()

if not settings.secret_key:
    raise RuntimeError("Secret key not configured.")


os.makedirs(settings.static_dir, exist_ok=True)
