# backend/main.py - service index
# uvicorn main:app --host 0.0.0.0 --port 20009 --reload

from common.constants import GATEWAY_SERVICE, SERVICES
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig

factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Service Index",
        description="Links to the API docs of every tourist safety service.",
        service_name="service_index",
        enable_metrics=False,
    )
)
app = factory.create_app()


@app.get("/")
async def index():
    services = {name: f"http://127.0.0.1:{port}/docs" for name, (_module, port) in SERVICES.items()}
    services["gateway"] = f"http://127.0.0.1:{GATEWAY_SERVICE[1]}/docs"
    return {"services": services}
