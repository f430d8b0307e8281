from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ridetrack.utils.units import UnitSystem


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RIDETRACK_", env_file=".env")

    # Local ride store (one JSON document per key)
    data_folder: Path = Path("./data/rides")

    # Remote backend (Supabase-style REST). Sync is disabled without a URL.
    backend_url: Optional[str] = None
    backend_key: Optional[str] = None

    # External map services
    osrm_base_url: str = "https://router.project-osrm.org"
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "RideTrack/0.1"
    http_timeout_s: float = 10.0

    # Place searches without an explicit region are biased to this radius
    search_radius_m: float = 5000.0

    # Fixes at or above this horizontal accuracy (m) are not recorded
    max_horizontal_accuracy_m: float = 50.0

    unit_system: UnitSystem = UnitSystem.METRIC

    # Allow empty env strings for optional fields
    @field_validator("backend_url", "backend_key", mode="before")
    @classmethod
    def _empty_to_none(cls, v):
        if v in ("", "null", "None"):
            return None
        return v
