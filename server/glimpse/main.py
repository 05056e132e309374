from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from glimpse.routers import analysis

app = FastAPI(
    title="Vue Glimpse Server",
    description="API classifying Vue single-file component identifiers and their template occurrences.",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Editor hosts connect from arbitrary local origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include Routers
app.include_router(analysis.router)


@app.get("/api-status")
async def root():
    return {"message": "Vue Glimpse Server is running. Visit /docs for API documentation."}
