from fastapi import FastAPI

from matrix_vcon.api.transactions import router as transactions_router

app = FastAPI(title="matrix-vcon", version="0.1.0")

app.include_router(transactions_router)


@app.get("/health")
def health():
    return {"status": "ok"}
