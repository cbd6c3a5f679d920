from fastapi import FastAPI
from starlette.responses import Response

from cmms.api.sap import router as sap_router
from cmms.logging import configure_logging
from cmms.services.sap import SapSession

app = FastAPI(title="cmms API")

configure_logging()

# One token per process, shared by every request-scoped SAP client.
app.state.sap_session = SapSession()

app.include_router(sap_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)
