"""FastAPI application entrypoint for the Nyumba Connect server."""
import uvicorn
from fastapi import FastAPI

from . import auth, mentorship, messages, resources
from .database import Base, engine
from .logging_config import configure_logging

logger = configure_logging()

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Nyumba Connect", version="1.0.0")
app.include_router(auth.router)
app.include_router(mentorship.router)
app.include_router(messages.router)
app.include_router(resources.router)


@app.get("/")
def root():
    return {"status": "ok"}


def run() -> None:
    uvicorn.run("nyumba_connect.server.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
