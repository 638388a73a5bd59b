import os
import pathlib
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from flagle.domain.daily_target import DEFAULT_SEED_STRING

load_dotenv()

root_path = pathlib.Path(__file__).parents[1]

database_url = os.getenv(
    "DATABASE_URL", f"sqlite+aiosqlite:///{root_path / 'flagle.sqlite3'}"
)
data_dir = pathlib.Path(os.getenv("FLAGLE_DATA_DIR", str(root_path / "data")))
flags_dir = pathlib.Path(
    os.getenv("FLAGLE_FLAGS_DIR", str(root_path / "flags" / "quantized"))
)
seed_string = os.getenv("FLAGLE_SEED_STRING", DEFAULT_SEED_STRING)
timezone_name = os.getenv("FLAGLE_TIMEZONE", "")
snapshot_retention_days = int(os.getenv("FLAGLE_SNAPSHOT_RETENTION_DAYS", "7"))
max_games = int(os.getenv("FLAGLE_MAX_GAMES", "1000"))
log_level = os.getenv("LOG_LEVEL", "INFO").upper()

# None means the server's local time
game_timezone = ZoneInfo(timezone_name) if timezone_name else None

if __name__ == "__main__":
    print(database_url, data_dir, flags_dir, seed_string, timezone_name, snapshot_retention_days, max_games)
