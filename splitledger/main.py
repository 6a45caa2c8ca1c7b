import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from splitledger.core.config import settings
from splitledger.db.database import Base, engine
import splitledger.models.users  # noqa: F401
import splitledger.models.groups  # noqa: F401
import splitledger.models.expenses  # noqa: F401
import splitledger.models.settlements  # noqa: F401
from splitledger.api.v1.routes.users import router as users_router
from splitledger.api.v1.routes.groups import router as groups_router
from splitledger.api.v1.routes.expenses import router as expenses_router
from splitledger.api.v1.routes.settlements import router as settlements_router
from splitledger.api.v1.routes.dashboard import router as dashboard_router
from splitledger.rabbitmq.setup import init_rabbitmq
from splitledger.rabbitmq.producer import close_rabbitmq_producer
from splitledger.utils.exceptions import LedgerError, InvalidArgument, NotFound, Unauthorized, Inconsistent

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Declare the expense events exchange when publishing is enabled
    init_rabbitmq()
    yield
    close_rabbitmq_producer()


app = FastAPI(
    title="Split Ledger - Shared Expenses",
    description="Records shared expenses and settlements and computes who owes whom",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(users_router)
app.include_router(groups_router)
app.include_router(expenses_router)
app.include_router(settlements_router)
app.include_router(dashboard_router)

_STATUS_BY_ERROR = [
    (InvalidArgument, 400),
    (NotFound, 404),
    (Unauthorized, 403),
    (Inconsistent, 422),
]


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next((code for error, code in _STATUS_BY_ERROR if isinstance(exc, error)), 400)
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/")
def read_root():
    return {"message": "Split Ledger API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
