import os
from dotenv import load_dotenv

load_dotenv()

# --- Supabase Configuration ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
JWT_ALGORITHM = "HS256"
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "10"))

# --- Store selection ---
# "supabase" talks to PostgREST, "sql" uses SQLAlchemy against DATABASE_URL
STORE_BACKEND = os.getenv("STORE_BACKEND", "supabase" if SUPABASE_URL else "sql")

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/pact.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- HTTP ---
CORS_ORIGINS = [o.strip() for o in os.getenv(
    "CORS_ORIGINS",
    "https://2026ismyyear-navy.vercel.app,http://localhost:5173,http://localhost:3000",
).split(",") if o.strip()]
PORT = int(os.getenv("PORT", "4000"))

# Registration was meant to open only on the last day of each month
REGISTRATION_LAST_DAY_ONLY = os.getenv("REGISTRATION_LAST_DAY_ONLY", "false").lower() in ("1", "true", "yes")

# --- Leaderboard ---
LEADERBOARD_SCORING = "average"  # or "sum"
LEADERBOARD_SIZE = 10
LEADERBOARD_WINDOW_DAYS = 7

# --- Streaks & goals ---
STREAK_LOOKBACK_DAYS = 365
PUBLIC_GOALS_LIMIT = 20
PUBLIC_GOAL_MAX_LENGTH = 200
GOAL_UNITS = ("days/week", "times/week", "minutes/day", "hours/day")
