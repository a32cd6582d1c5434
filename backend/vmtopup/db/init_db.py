"""Create all tables. Run on app startup."""
from sqlalchemy.engine import Engine

from vmtopup.db.base import Base
from vmtopup.db.session import engine as default_engine
from vmtopup.models import order, conversation_state  # noqa: F401 - register models


def init_db(engine: Engine | None = None):
    Base.metadata.create_all(bind=engine or default_engine)
