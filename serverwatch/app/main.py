import os, time, asyncio, logging
from contextlib import asynccontextmanager, suppress
import httpx
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from redis import asyncio as aioredis
from .config import settings
from .broadcaster import Broadcaster
from .extractors import ExtractorConfigError, load_extractor
from .fetcher import fetch_document
from .poller import Poller
from .snapshot import to_payload
from .store import SnapshotStore, StoreUnavailable, read_snapshot
from .ui import HTML as INDEX_HTML

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_DIR = os.path.dirname(__file__)
ROOT_DIR = os.path.abspath(os.path.join(APP_DIR, ".."))


def extractor_path() -> str:
    if os.path.isabs(settings.EXTRACTOR_PATH):
        return settings.EXTRACTOR_PATH
    return os.path.join(os.path.dirname(ROOT_DIR), settings.EXTRACTOR_PATH)


def create_app(store: SnapshotStore = None, extractor=None, fetch=None,
               run_poller: bool = True) -> FastAPI:
    """Wire store, extractor, broadcaster and poller into a FastAPI app."""
    broadcaster = Broadcaster(queue_size=settings.LISTENER_QUEUE_SIZE)
    if store is None:
        store = SnapshotStore(aioredis.from_url(settings.REDIS_URL),
                              key=settings.STORE_KEY, timeout_s=settings.STORE_TIMEOUT_S)
    if extractor is None:
        extractor = load_extractor(extractor_path())

    async def fetch_target() -> bytes:
        return await fetch_document(app.state.http, settings.TARGET_URL)

    poller = Poller(fetch or fetch_target, extractor, store, broadcaster,
                    interval_s=settings.POLL_INTERVAL_S, url=settings.TARGET_URL)
    started_at = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(max_connections=5, max_keepalive_connections=5)
        async with httpx.AsyncClient(limits=limits) as client:
            app.state.http = client
            task = asyncio.create_task(poller.run()) if run_poller else None
            try:
                yield
            finally:
                if task is not None:
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task
                broadcaster.close()
                await store.close()
                logger.info("Shutdown complete")

    app = FastAPI(title="serverwatch", lifespan=lifespan)
    app.state.store = store
    app.state.broadcaster = broadcaster
    app.state.poller = poller

    @app.get("/", response_class=HTMLResponse)
    def index():
        return HTMLResponse(INDEX_HTML)

    @app.get("/health", response_class=JSONResponse)
    def health():
        return JSONResponse({
            "ok": True,
            "uptime_s": int(time.time() - started_at),
            "listeners": len(broadcaster),
            "strategy": poller.extractor.STRATEGY,
            "polling": poller.busy,
        })

    @app.get("/api/initial-status", response_class=JSONResponse)
    async def initial_status():
        """Latest stored snapshot, [] when there is none or it is unreadable"""
        snapshot = await read_snapshot(store)
        return JSONResponse(to_payload(snapshot), headers={"Cache-Control": "no-store"})

    @app.get("/api/status", response_class=JSONResponse)
    async def api_status():
        """Time of the last detected change"""
        try:
            changed_at = await store.get_changed_at()
        except StoreUnavailable as e:
            logger.warning(f"Change time read failed: {e}")
            changed_at = None
        return JSONResponse({"lastPingTime": changed_at}, headers={"Cache-Control": "no-store"})

    @app.get("/events")
    async def events(request: Request):
        listener = broadcaster.subscribe()

        async def frames():
            try:
                yield ": connected\n\n"
                async for frame in listener.stream(settings.HEARTBEAT_S):
                    if await request.is_disconnected():
                        break
                    yield frame
            finally:
                broadcaster.unsubscribe(listener.id)

        return StreamingResponse(frames(), media_type="text/event-stream",
                                 headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"})

    @app.post("/reload")
    async def reload_extractor(x_reload_token: str = Header(None)):
        """Reload the extractor configuration (requires token)"""
        if x_reload_token != settings.RELOAD_TOKEN:
            raise HTTPException(status_code=401, detail="Invalid reload token")
        try:
            poller.extractor = load_extractor(extractor_path())
        except ExtractorConfigError as e:
            logger.error(f"Failed to reload extractor: {e}")
            raise HTTPException(status_code=400, detail=f"Reload failed: {e}")
        return {"ok": True, "strategy": poller.extractor.STRATEGY}

    return app


app = create_app()
