import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockflow.app.api.v1.router import router as v1_router
from stockflow.services.errors import StockflowError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("stockflow")

app = FastAPI(title="STOCKFLOW", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(StockflowError)
async def stockflow_error_handler(request: Request, exc: StockflowError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
