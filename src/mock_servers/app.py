"""FastAPI mock backends for local runs and tests.

``create_commerce_app`` imitates the commerce backend's store endpoints
(archive filter, attribute batch lookups, want-list) and
``create_content_app`` the content backend's query endpoint. Both serve the
same deterministic catalog generated by ``build_catalog``.
"""

import json
import os
import random
import re
from typing import Dict, Iterable, List, Optional

from fastapi import Body, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse


ARTISTS = ["Larry Heard", "Sade", "Arthur Russell", "Fela Kuti", "Alice Coltrane", "Moodymann"]
FORMATS = ["LP", "12\"", "7\"", "Cassette", "CD", "2xLP"]
TAGS = ["house", "jazz", "soul", "ambient", "disco", "library"]


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def build_catalog(count: int = 120, random_seed: Optional[int] = 42) -> List[Dict]:
    """
    Generate a deterministic catalog.

    Each product has a handle, one or two artists (the first is primary),
    formats, tags, a price, a creation timestamp and a stock flag. Every
    tenth product has no image.
    """
    rng = random.Random(random_seed)
    catalog = []
    for i in range(count):
        artists = [rng.choice(ARTISTS)]
        if rng.random() < 0.3:
            artists.append(rng.choice([a for a in ARTISTS if a != artists[0]]))
        title = f"Record {i + 1:03d}"
        catalog.append({
            "id": f"prod_{i + 1:03d}",
            "handle": f"{slugify(title)}-{slugify(artists[0])}",
            "title": title,
            "artist": artists,
            "format": [rng.choice(FORMATS)],
            "tags": rng.sample(TAGS, 2),
            "price": round(rng.uniform(8.0, 60.0), 2),
            "created_at": f"2025-01-01T00:00:{i:02d}Z" if i < 60 else f"2025-01-02T00:{i - 60:02d}:00Z",
            "in_stock": rng.random() < 0.7,
            "thumbnail": None if i % 10 == 9 else f"https://cdn.example.com/{i + 1:03d}.jpg",
        })
    return catalog


def _matches(values: Iterable[str], slug: str) -> bool:
    return any(slugify(v) == slugify(slug) for v in values)


def _sorted(products: List[Dict], field: str, descending: bool) -> List[Dict]:
    def key(p):
        value = p.get(field)
        if isinstance(value, list):
            value = value[0] if value else ""
        if isinstance(value, str):
            value = value.lower()
        return (value, p["id"])
    return sorted(products, key=key, reverse=descending)


def _record(app: FastAPI, path: str, payload) -> None:
    app.state.calls.append((path, payload))


def create_commerce_app(
    catalog: Optional[List[Dict]] = None,
    failing_paths: Optional[Iterable[str]] = None,
    wantlists: Optional[Dict[str, List[Dict]]] = None,
    failing_deletes: Optional[Iterable[str]] = None
) -> FastAPI:
    """
    Create a mock commerce backend.

    Args:
        catalog: Products to serve (defaults to ``build_catalog()``)
        failing_paths: Paths that answer 503
        wantlists: Want-list items per bearer token
        failing_deletes: Product ids whose want-list delete answers 500

    Returns:
        FastAPI application; ``app.state.calls`` records (path, payload)
    """
    catalog = catalog if catalog is not None else build_catalog()
    by_handle = {p["handle"]: p for p in catalog}
    failing = set(failing_paths or [])
    failing_delete_ids = set(failing_deletes or [])

    app = FastAPI(title="Mock commerce backend")
    app.state.calls = []
    app.state.wantlists = {token: list(items) for token, items in (wantlists or {}).items()}

    @app.middleware("http")
    async def simulate_failures(request: Request, call_next):
        if request.url.path in failing:
            return JSONResponse({"message": "Simulated outage"}, status_code=503)
        return await call_next(request)

    @app.get("/store/products/filter")
    async def filter_products(
        type: str,
        value: str,
        limit: int = 48,
        offset: int = 0,
        sort: str = "created_at",
        order: str = "desc",
        requireImage: str = "true",
        primaryOnly: str = "false"
    ):
        _record(app, "/store/products/filter", {"type": type, "value": value, "offset": offset})
        if type == "artist":
            if primaryOnly == "true":
                matched = [p for p in catalog if _matches(p["artist"][:1], value)]
            else:
                matched = [p for p in catalog if _matches(p["artist"], value)]
        elif type == "format":
            matched = [p for p in catalog if _matches(p["format"], value)]
        elif type == "genre":
            matched = [p for p in catalog if _matches(p["tags"], value)]
        else:
            raise HTTPException(status_code=400, detail=f"Unknown filter type: {type}")

        if requireImage == "true":
            matched = [p for p in matched if p["thumbnail"]]

        field = {"price_usd": "price"}.get(sort, sort)
        matched = _sorted(matched, field, order == "desc")
        display_name = " ".join(w.capitalize() for w in value.split("-"))
        return {
            "products": matched[offset:offset + limit],
            "total": len(matched),
            "limit": limit,
            "offset": offset,
            "filter": {"type": type, "value": value, "display_name": display_name},
        }

    @app.post("/store/products/stock-check")
    async def stock_check(payload: Dict = Body(...)):
        handles = payload.get("handles") or []
        _record(app, "/store/products/stock-check", sorted(handles))
        return {"stock": {h: by_handle[h]["in_stock"] for h in handles if h in by_handle}}

    @app.post("/store/products/formats")
    async def formats(payload: Dict = Body(...)):
        handles = payload.get("productIds") or []
        _record(app, "/store/products/formats", sorted(handles))
        return {"formats": {h: by_handle[h]["format"] for h in handles if h in by_handle}}

    @app.post("/store/products/artists")
    async def artists(payload: Dict = Body(...)):
        handles = payload.get("handles") or []
        _record(app, "/store/products/artists", sorted(handles))
        return {"artists": {h: by_handle[h]["artist"] for h in handles if h in by_handle}}

    def _token(authorization: Optional[str]) -> str:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Unauthorized")
        return authorization[len("Bearer "):]

    @app.get("/store/wantlist")
    async def get_wantlist(authorization: Optional[str] = Header(default=None)):
        token = _token(authorization)
        return {"wantlist": app.state.wantlists.get(token, [])}

    @app.delete("/store/wantlist")
    async def delete_wantlist(payload: Dict = Body(...), authorization: Optional[str] = Header(default=None)):
        token = _token(authorization)
        _record(app, "DELETE /store/wantlist", payload)
        if payload.get("product_id") in failing_delete_ids:
            raise HTTPException(status_code=500, detail="Simulated delete failure")
        items = app.state.wantlists.get(token, [])
        app.state.wantlists[token] = [
            item for item in items
            if not (
                item.get("product_id") == payload.get("product_id")
                and item.get("variant_id") == payload.get("variant_id")
            )
        ]
        return {"success": True}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "server": "commerce"}

    return app


def create_content_app(catalog: Optional[List[Dict]] = None, failing: bool = False) -> FastAPI:
    """
    Create a mock content backend.

    Understands just enough of the queries ContentQuerySource sends: the
    dimension condition (artist/format/tags against ``$variants``), the
    ``order(...)`` clause and the ``[start...end]`` slice.
    """
    catalog = catalog if catalog is not None else build_catalog()
    app = FastAPI(title="Mock content backend")
    app.state.calls = []

    @app.get("/v1/data/query/{dataset}")
    async def query(dataset: str, request: Request):
        if failing:
            raise HTTPException(status_code=503, detail="Simulated outage")
        groq = request.query_params.get("query", "")
        variants = json.loads(request.query_params.get("$variants", "[]"))
        _record(app, f"/v1/data/query/{dataset}", groq)

        slugs = [slugify(v) for v in variants]
        if "tags[" in groq:
            matched = [p for p in catalog if any(slugify(t) in slugs for t in p["tags"])]
        elif "format[" in groq:
            matched = [p for p in catalog if any(slugify(f) in slugs for f in p["format"])]
        elif "artist[0] in" in groq:
            matched = [p for p in catalog if slugify(p["artist"][0]) in slugs]
        elif "artist[" in groq:
            matched = [p for p in catalog if any(slugify(a) in slugs for a in p["artist"])]
        else:
            matched = list(catalog)
        if "defined(mainImage.asset)" in groq:
            matched = [p for p in matched if p["thumbnail"]]

        order = re.search(r"order\((\w+)(?:\((\w+)(?:\[0\])?\))?\s*(asc|desc)", groq)
        if order:
            field = order.group(2) or order.group(1)
            field = {"_createdAt": "created_at"}.get(field, field)
            matched = _sorted(matched, field, order.group(3) == "desc")

        window = re.search(r"\[(\d+)\.\.\.(\d+)\]", groq)
        start, end = (int(window.group(1)), int(window.group(2))) if window else (0, len(matched))

        return {
            "result": {
                "products": [
                    {
                        "_id": p["id"],
                        "_createdAt": p["created_at"],
                        "title": p["title"],
                        "artist": p["artist"],
                        "format": p["format"],
                        "tags": p["tags"],
                        "price": p["price"],
                        "swellProductId": p["id"],
                        "swellSlug": p["handle"],
                        "imageUrl": p["thumbnail"],
                    }
                    for p in matched[start:end]
                ],
                "total": len(matched),
            }
        }

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads SERVER_NAME from environment to pick the backend to imitate.
    """
    seed = int(os.getenv("RANDOM_SEED", 42))
    catalog = build_catalog(int(os.getenv("CATALOG_SIZE", 120)), seed)
    if os.getenv("SERVER_NAME", "commerce") == "content":
        return create_content_app(catalog)
    return create_commerce_app(catalog)
