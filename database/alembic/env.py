import sys
from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Añade la raíz del proyecto al path para que pueda importar `database.models`
project_root = Path(__file__).resolve().parents[2]
sys.path.append(str(project_root))

# Importa la metadata de los modelos (tags y scan_events)
from database.db import Base, SQLALCHEMY_DATABASE_URL
from database import models  # noqa: F401

# Este es el objeto Config de Alembic, que lee alembic.ini
config = context.config

# La URL sale de DATABASE_URL (.env / Railway), no de alembic.ini
config.set_main_option('sqlalchemy.url', SQLALCHEMY_DATABASE_URL)

# Configura el logging según alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata que usará Alembic para autogenerar
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Ejecuta migraciones en modo offline (genera SQL)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Ejecuta migraciones en modo online (conexión real)."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,             # detectar cambios de tipo
            compare_server_default=True,   # detectar cambios en default
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
