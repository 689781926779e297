import logging
from logging.config import fileConfig
import os
from pathlib import Path

from flask import current_app
from alembic import context

config = context.config

# alembic.ini lives next to this file; don't crash when it's missing
_ini = config.config_file_name or str(Path(__file__).with_name("alembic.ini"))
if Path(_ini).exists():
    fileConfig(_ini)
else:
    logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("alembic.env")


def get_engine():
    return current_app.extensions["migrate"].db.engine


def get_engine_url():
    return get_engine().url.render_as_string(hide_password=False).replace("%", "%%")


config.set_main_option("sqlalchemy.url", get_engine_url())
target_db = current_app.extensions["migrate"].db


def get_metadata():
    # Importing the package registers every table, index and check constraint
    import betaboard.models  # noqa: F401
    if hasattr(target_db, "metadatas"):
        return target_db.metadatas[None]
    return target_db.metadata


# Index drops proposed by autogenerate are skipped unless listed here (comma-separated)
_DROP_INDEX_ALLOWLIST = {
    n.strip() for n in os.getenv("ALEMBIC_DROP_INDEX_ALLOWLIST", "").split(",") if n.strip()
}


def _include_object(object, name, type_, reflected, compare_to):
    if type_ == "index" and reflected and compare_to is None:
        return name in _DROP_INDEX_ALLOWLIST
    return True


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=get_metadata(),
        literal_binds=True,
        compare_type=True,
        include_object=_include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    def process_revision_directives(context_, revision, directives):
        if getattr(config.cmd_opts, "autogenerate", False):
            if directives[0].upgrade_ops.is_empty():
                directives[:] = []
                logger.info("No changes in schema detected.")

    conf_args = dict(current_app.extensions["migrate"].configure_args)
    conf_args.setdefault("process_revision_directives", process_revision_directives)
    conf_args.update(
        compare_type=True,
        include_object=_include_object,
        target_metadata=get_metadata(),
        # SQLite needs batch mode for ALTERs
        render_as_batch=get_engine().dialect.name == "sqlite",
    )

    with get_engine().connect() as connection:
        context.configure(connection=connection, **conf_args)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
