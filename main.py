import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import get_settings
from errors import StorageError
from logger import configure_logging
from schemas import (
    Challenge,
    ChallengeCreate,
    ChallengeInput,
    ChallengeUpdate,
    ContactMessageCreate,
    Media,
    MediaCreate,
    MediaType,
    MediaUpdate,
    Quote,
    QuoteCreate,
    QuoteUpdate,
    SubscriberCreate,
    Tip,
    TipCreate,
    TipUpdate,
)
from storage import AppContext, Storage, build_context

logger = logging.getLogger(__name__)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Service factory. The store is chosen once, when the app starts."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context
        if ctx is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            ctx = build_context(settings)
        app.state.context = ctx
        try:
            yield
        finally:
            ctx.close()

    app = FastAPI(title="SoulElevate API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    register_routes(app)
    return app


# -------- Error mapping ---------

async def validation_error_handler(request: Request, exc):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": str(exc)})


def get_storage(request: Request) -> Storage:
    return request.app.state.context.storage


def found(record, what: str):
    if record is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return record


def deleted(ok: bool, what: str) -> Response:
    if not ok:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return Response(status_code=204)


# --------- Routes ----------

def register_routes(app: FastAPI) -> None:

    @app.get("/")
    def read_root():
        return {"message": "SoulElevate API running"}

    @app.get("/health")
    def health(request: Request):
        return {"backend": "✅ Running", "storage": request.app.state.context.storage.name}

    # Quotes

    @app.get("/api/quotes", response_model=List[Quote])
    def list_quotes(storage: Storage = Depends(get_storage)):
        return storage.get_all_quotes()

    @app.get("/api/quotes/featured", response_model=Quote)
    def featured_quote(storage: Storage = Depends(get_storage)):
        return found(storage.get_featured_quote(), "Featured quote")

    @app.get("/api/quotes/{quote_id}", response_model=Quote)
    def get_quote(quote_id: int, storage: Storage = Depends(get_storage)):
        return found(storage.get_quote_by_id(quote_id), "Quote")

    @app.post("/api/quotes", response_model=Quote, status_code=201)
    def create_quote(quote: QuoteCreate, storage: Storage = Depends(get_storage)):
        return storage.create_quote(quote)

    @app.put("/api/quotes/{quote_id}", response_model=Quote)
    def update_quote(quote_id: int, quote: QuoteUpdate, storage: Storage = Depends(get_storage)):
        return found(storage.update_quote(quote_id, quote), "Quote")

    @app.delete("/api/quotes/{quote_id}", status_code=204)
    def delete_quote(quote_id: int, storage: Storage = Depends(get_storage)):
        return deleted(storage.delete_quote(quote_id), "Quote")

    # Tips

    @app.get("/api/tips", response_model=List[Tip])
    def list_tips(category: Optional[str] = Query(None), storage: Storage = Depends(get_storage)):
        if category:
            return storage.get_tips_by_category(category)
        return storage.get_all_tips()

    @app.get("/api/tips/{tip_id}", response_model=Tip)
    def get_tip(tip_id: int, storage: Storage = Depends(get_storage)):
        return found(storage.get_tip_by_id(tip_id), "Tip")

    @app.post("/api/tips", response_model=Tip, status_code=201)
    def create_tip(tip: TipCreate, storage: Storage = Depends(get_storage)):
        return storage.create_tip(tip)

    @app.put("/api/tips/{tip_id}", response_model=Tip)
    def update_tip(tip_id: int, tip: TipUpdate, storage: Storage = Depends(get_storage)):
        return found(storage.update_tip(tip_id, tip), "Tip")

    @app.delete("/api/tips/{tip_id}", status_code=204)
    def delete_tip(tip_id: int, storage: Storage = Depends(get_storage)):
        return deleted(storage.delete_tip(tip_id), "Tip")

    # Media

    @app.get("/api/media", response_model=List[Media])
    def list_media(type: Optional[MediaType] = Query(None), storage: Storage = Depends(get_storage)):
        if type:
            return storage.get_media_by_type(type)
        return storage.get_all_media()

    @app.get("/api/media/featured/{media_type}", response_model=Media)
    def featured_media(media_type: MediaType, storage: Storage = Depends(get_storage)):
        return found(storage.get_featured_media(media_type), f"Featured {media_type}")

    @app.get("/api/media/{media_id}", response_model=Media)
    def get_media(media_id: int, storage: Storage = Depends(get_storage)):
        return found(storage.get_media_by_id(media_id), "Media")

    @app.post("/api/media", response_model=Media, status_code=201)
    def create_media(media: MediaCreate, storage: Storage = Depends(get_storage)):
        return storage.create_media(media)

    @app.put("/api/media/{media_id}", response_model=Media)
    def update_media(media_id: int, media: MediaUpdate, storage: Storage = Depends(get_storage)):
        return found(storage.update_media(media_id, media), "Media")

    @app.delete("/api/media/{media_id}", status_code=204)
    def delete_media(media_id: int, storage: Storage = Depends(get_storage)):
        return deleted(storage.delete_media(media_id), "Media")

    # Contact and newsletter

    @app.post("/api/contact", status_code=201)
    def send_contact_message(message: ContactMessageCreate, storage: Storage = Depends(get_storage)):
        storage.create_contact_message(message)
        return {"success": True, "message": "Message sent successfully"}

    @app.post("/api/subscribe", status_code=201)
    def subscribe(subscriber: SubscriberCreate, storage: Storage = Depends(get_storage)):
        storage.add_subscriber(subscriber)
        return {"success": True, "message": "Subscribed successfully"}

    # Challenges

    @app.get("/api/challenges", response_model=List[Challenge])
    def list_challenges(category: Optional[str] = Query(None), storage: Storage = Depends(get_storage)):
        if category:
            return storage.get_challenges_by_category(category)
        return storage.get_all_challenges()

    @app.post("/api/challenges/generate", response_model=Challenge, status_code=201)
    def generate_challenge(challenge_input: ChallengeInput, storage: Storage = Depends(get_storage)):
        return storage.generate_personalized_challenge(challenge_input)

    @app.get("/api/challenges/{challenge_id}", response_model=Challenge)
    def get_challenge(challenge_id: int, storage: Storage = Depends(get_storage)):
        return found(storage.get_challenge_by_id(challenge_id), "Challenge")

    @app.post("/api/challenges", response_model=Challenge, status_code=201)
    def create_challenge(challenge: ChallengeCreate, storage: Storage = Depends(get_storage)):
        return storage.create_challenge(challenge)

    @app.put("/api/challenges/{challenge_id}", response_model=Challenge)
    def update_challenge(challenge_id: int, challenge: ChallengeUpdate, storage: Storage = Depends(get_storage)):
        return found(storage.update_challenge(challenge_id, challenge), "Challenge")

    @app.delete("/api/challenges/{challenge_id}", status_code=204)
    def delete_challenge(challenge_id: int, storage: Storage = Depends(get_storage)):
        return deleted(storage.delete_challenge(challenge_id), "Challenge")


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
