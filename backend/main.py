from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse
from fastapi import Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from mangum import Mangum
from config import ENVIRONMENT, LOG_LEVEL
from utils.errors import error_code_for
from utils.response_helpers import api_response
import logging

from routers.otp.otp import router as otp_router
from routers.auth.auth import router as auth_router
from routers.retailers.retailers import router as retailers_router
from routers.wholesalers.wholesalers import router as wholesalers_router
from routers.products.products import router as products_router
from routers.orders.orders import router as orders_router
from routers.admin.admin import router as admin_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

IS_PRODUCTION = ENVIRONMENT == "prod"

app = FastAPI(
    title="TradeLink API",
    description="B2B marketplace API connecting retailers and wholesalers: onboarding, KYC, catalog and orders.",
    version="1.0.0",
    root_path="/Prod" if IS_PRODUCTION else "",
    docs_url="/apidocs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    servers=[
        {"url": "https://your-aws-api.execute-api.region.amazonaws.com/Prod", "description": "Production Server"},
        {"url": "http://localhost:8000", "description": "Local Development Server"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(otp_router)
app.include_router(auth_router)
app.include_router(retailers_router)
app.include_router(wholesalers_router)
app.include_router(products_router)
app.include_router(orders_router)
app.include_router(admin_router)


# =================
# ERROR ENVELOPE
# =================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return api_response(exc.status_code, str(exc.detail), error=error_code_for(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return api_response(status.HTTP_400_BAD_REQUEST, message, error="ValidationFailed")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return api_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", error="Internal")


DOC_LINKS = [
    ("/docs", "Stoplight Elements"),
    ("/apidocs", "Swagger UI"),
    ("/redoc", "ReDoc"),
    ("/openapi.json", "OpenAPI schema"),
]


@app.get("/docs", include_in_schema=False)
async def api_documentation(request: Request):
    openapi_url = f"{app.root_path}/openapi.json"

    return HTMLResponse(f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>TradeLink API reference</title>
    <script src="https://unpkg.com/@stoplight/elements/web-components.min.js"></script>
    <link rel="stylesheet" href="https://unpkg.com/@stoplight/elements/styles.min.css">
  </head>
  <body>
    <elements-api apiDescriptionUrl="{openapi_url}" router="hash" layout="sidebar"></elements-api>
  </body>
</html>""")


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page linking the API references"""
    links = "".join(f'<li><a href="{path}">{label}</a></li>' for path, label in DOC_LINKS)
    return f"""<html>
  <head><title>TradeLink API</title></head>
  <body style="font-family: sans-serif; margin: 40px;">
    <h1>TradeLink API</h1>
    <p>Retailer and wholesaler marketplace backend, version {app.version}.</p>
    <ul>{links}</ul>
  </body>
</html>"""


handler = Mangum(app)
