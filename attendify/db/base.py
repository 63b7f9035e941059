# attendify/db/base.py
from attendify.db.base_class import Base  # mantém

# Carrega os models para registrar as tabelas no metadata (Alembic / create_all)
import attendify.models  # noqa: F401

__all__ = ["Base"]
