"""
Database initialization script
Creates the tables of the local store
"""
import logging

from aura.database import engine as default_engine
from aura.models import Base

logger = logging.getLogger(__name__)

def init_database(engine=None):
    """Create any missing tables; existing rows are left untouched"""
    engine = engine or default_engine
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {', '.join(sorted(Base.metadata.tables))}")

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
