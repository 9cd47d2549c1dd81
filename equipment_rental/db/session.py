import os

from dotenv import load_dotenv

from .engine import build_engine, build_session_factory

load_dotenv()


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


EQUIPMENT_RENTAL_DB_URL = _require_env("EQUIPMENT_RENTAL_DB_URL")

engine_rental = build_engine(EQUIPMENT_RENTAL_DB_URL)

SessionLocalRental = build_session_factory(engine_rental)
