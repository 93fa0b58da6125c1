from fastapi import FastAPI

from airport_importer.api.routers.airports import router as airports_router


app = FastAPI(title="World Airport Codes Importer", version="0.1")

app.include_router(airports_router)
