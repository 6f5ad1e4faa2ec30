import time

from fastapi import FastAPI
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .database import SessionLocal, init_db
from .routes import include_modular_routers

app = FastAPI(title="SkillMatch API")
include_modular_routers(app)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    init_db()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
