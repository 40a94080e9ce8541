# checkout_engine/main.py
import uvicorn

from checkout_engine.api import create_app
from checkout_engine.data.database import Base, engine, init_db
from checkout_engine.utils.logging import get_logger

logger = get_logger(__name__)

init_db(engine)
logger.info(f"Database ready, tables: {sorted(Base.metadata.tables.keys())}")

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
