from datetime import datetime

import structlog
from fastapi import FastAPI

from backoffice.core.logging_config import setup_logging
from backoffice.database.connection import Base, SessionLocal, engine
from backoffice.middleware.metrics import MetricsMiddleware, new_metrics
import backoffice.models  # noqa: F401  registers every table on Base.metadata
from backoffice.routes import system
from backoffice.routes.auth import router as auth_router
from backoffice.routes.catalog import router as catalog_router
from backoffice.routes.currencies import router as currency_router
from backoffice.routes.customers import router as customer_router
from backoffice.routes.orders import router as order_router
from backoffice.routes.products import router as product_router
from backoffice.services.pricing_service.price_resolver import PriceResolver

setup_logging()
logger = structlog.get_logger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Shop Back-office: Pricing, Orders & Order History")

app.add_middleware(MetricsMiddleware)


app.include_router(auth_router)
app.include_router(product_router)
app.include_router(catalog_router)
app.include_router(customer_router)
app.include_router(currency_router)
app.include_router(order_router)
app.include_router(system.router)

@app.on_event("startup")
async def startup_event():
    app.state.start_time = datetime.utcnow()
    app.state.metrics = new_metrics()

    resolver = PriceResolver()
    db = SessionLocal()
    try:
        # warm the default group cache; a missing group is looked up again later
        if resolver.default_group_id(db) is None:
            logger.warning("default_customer_group_missing", code=resolver.default_group_code)
    finally:
        db.close()
    app.state.price_resolver = resolver
