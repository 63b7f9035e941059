# attendify/db/bootstrap.py
import os
from alembic import command
from alembic.config import Config
from sqlalchemy.orm import sessionmaker

from attendify.core.config import settings
from attendify.db.init_db import init_db
from attendify.services.qr import encode_qr

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

def alembic_config(database_url: str | None = None) -> Config:
    # Aponta explicitamente para alembic.ini e migrations/
    cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "migrations"))
    if database_url:
        cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg

def run_migrations_and_seed(session_factory: sessionmaker, encoder=None) -> None:
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        url = session_factory.kw["bind"].url.render_as_string(hide_password=False)
        command.upgrade(alembic_config(url), "head")

    # Roda o seed
    with session_factory() as db:
        init_db(db, encoder=encoder or encode_qr)
