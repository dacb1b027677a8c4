
from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
import os
import threading
import uvicorn

app = FastAPI(
    title="Mock Catalog API",
    description="Catálogo remoto simulado para desarrollo local de catalog_sync",
    version="1.0.0"
)

API_TOKEN = os.environ.get("MOCK_CATALOG_TOKEN", "")


class Price(BaseModel):
    value: str
    currency: str = Field(..., min_length=3, max_length=3)


class Product(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "offerId": "SKU1",
                "title": "Widget",
                "description": "A widget",
                "link": "https://example.com/p/1",
                "imageLink": "https://example.com/p/1.jpg",
                "price": {"value": "9.90", "currency": "USD"},
                "availability": "in stock",
                "condition": "new",
            }
        },
    )

    offerId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=150)
    description: str
    link: str
    imageLink: str
    price: Price
    availability: str
    condition: Optional[str] = "new"
    brand: Optional[str] = None
    additionalImageLinks: List[str] = Field(default_factory=list, max_length=10)


# Base de datos en memoria (simulada)
PRODUCTS_DB = {}

# Fallos pendientes de inyectar (503) en las rutas de productos
_failures = {"remaining": 0}
_lock = threading.Lock()


def product_id_for(offer_id: str) -> str:
    return f"online:en:US:{offer_id}"


def require_token(authorization: Optional[str] = Header(None)):
    """Simula la autenticación OAuth del catálogo real"""
    if not API_TOKEN:
        return
    if authorization != f"Bearer {API_TOKEN}":
        raise HTTPException(status_code=401, detail="invalid_client: bad or missing token")


def maybe_fail():
    """Responde 503 mientras queden fallos simulados"""
    with _lock:
        if _failures["remaining"] > 0:
            _failures["remaining"] -= 1
            raise HTTPException(status_code=503, detail="Backend temporarily unavailable")


def _store(product_id: str, product: Product) -> dict:
    now = datetime.now().isoformat()
    stored = PRODUCTS_DB.get(product_id, {"created_at": now})
    stored.update(product.model_dump())
    stored["id"] = product_id
    stored["updated_at"] = now
    PRODUCTS_DB[product_id] = stored
    return stored


@app.get("/health")
async def health_check():
    """Health check para verificar que la API está funcionando"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "products_count": len(PRODUCTS_DB)
    }


@app.post("/products", status_code=201, dependencies=[Depends(require_token), Depends(maybe_fail)])
async def insert_product(product: Product):
    """
    Inserta un producto (upsert por offerId)

    El id remoto se deriva del offerId, por lo que repetir el insert es
    idempotente.
    """
    return _store(product_id_for(product.offerId), product)


@app.put("/products/{product_id}", dependencies=[Depends(require_token), Depends(maybe_fail)])
async def update_product(product_id: str, product: Product):
    """Reemplaza un producto existente o lo crea con el id dado"""
    return _store(product_id, product)


@app.get("/products/{product_id}", dependencies=[Depends(require_token), Depends(maybe_fail)])
async def get_product(product_id: str):
    product = PRODUCTS_DB.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product


@app.delete("/products/{product_id}", status_code=204, dependencies=[Depends(require_token), Depends(maybe_fail)])
async def delete_product(product_id: str):
    if PRODUCTS_DB.pop(product_id, None) is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return None


@app.post("/simulate/failures")
async def simulate_failures(count: int = Query(1, ge=0, le=100)):
    """
    Endpoint de prueba: las próximas `count` llamadas a /products responden 503

    Útil para comprobar reintentos y backoff
    """
    with _lock:
        _failures["remaining"] = count
    return JSONResponse(content={"pending_failures": count})


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
