import fastapi
import logging
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from managers.auth_manager import UnauthorizedError
from . import connection, products, assets, generation, checkout, webhooks, order, mockups

logging.basicConfig(level=logging.INFO)

app = fastapi.FastAPI(title=get_settings().PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: fastapi.Request, exc: UnauthorizedError):
    return JSONResponse(status_code=401, content={"ok": False, "error": "Unauthorized"})


app.include_router(connection.router)
app.include_router(products.router)
app.include_router(assets.router)
app.include_router(generation.router)
app.include_router(checkout.router)
app.include_router(webhooks.router)
app.include_router(order.router)
app.include_router(mockups.router)
