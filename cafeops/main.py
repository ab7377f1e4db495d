import time
from fastapi import FastAPI
from sqlalchemy.exc import OperationalError
from cafeops.core.config import settings

# 1. Infrastructure & Domain Imports
from cafeops.domain import models  # noqa: F401  (registers the tables on Base)
from cafeops.domain.errors import CafeOpsError
from cafeops.infrastructure.database import Base, engine as default_engine, SessionLocal
from cafeops.infrastructure.repositories.order_repository import SqlOrderStore
from cafeops.infrastructure.repositories.staff_repository import SqlStaffDirectory
from cafeops.interfaces import orders_api
from sqlalchemy.orm import sessionmaker


# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
def connect_database(engine, retries=None, wait_seconds=None) -> bool:
    retries = settings.DB_CONNECT_RETRIES if retries is None else retries
    wait_seconds = settings.DB_CONNECT_WAIT_SECONDS if wait_seconds is None else wait_seconds

    for attempt in range(retries):
        try:
            print(f"🔄 Attempting DB connection ({attempt + 1}/{retries})...")
            Base.metadata.create_all(bind=engine)
            print("✅ DB Connected and Tables Created.")
            return True
        except OperationalError:
            print(f"⚠️ DB not ready yet. Waiting {wait_seconds}s...")
            time.sleep(wait_seconds)
    print("❌ Could not connect to DB after retries.")
    return False


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def create_app(engine=None) -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME)

    if engine is None:
        engine, session_factory = default_engine, SessionLocal
    else:
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    app.state.db_ready = connect_database(engine)
    app.state.order_store = SqlOrderStore(session_factory)
    app.state.staff_directory = SqlStaffDirectory(session_factory)

    app.add_exception_handler(CafeOpsError, orders_api.cafe_ops_error_handler)
    app.include_router(orders_api.router)

    @app.get("/")
    def health_check():
        status = "active" if app.state.db_ready else "degraded"
        return {"status": status, "system": "Cafe Ops Order Store"}

    return app


app = create_app()
