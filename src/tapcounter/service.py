"""FastAPI service exposing a tap tempo tracker to a Web UI.

The browser POSTs `/tap` on each click and `/control` from its meter/method
pickers, then re-reads the returned state. Timeouts happen server-side, so
`/ws` pushes a fresh state whenever the tracker reports a change.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from .options import METER_OPTIONS, METHOD_OPTIONS, CountMethod, Meter
from .tracker import TempoTracker

logger = logging.getLogger(__name__)


class ControlModel(BaseModel):
    meter: Optional[Meter] = None
    method: Optional[CountMethod] = None


def make_app(tracker: Optional[TempoTracker] = None) -> FastAPI:
    app = FastAPI(title="Tap Tempo Service", version="0.1.0")
    trk = tracker or TempoTracker()
    app.state.tracker = trk

    loop_task: Optional[asyncio.Task] = None
    changed: Optional[asyncio.Event] = None
    ws_clients: set[WebSocket] = set()

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - integration
        nonlocal loop_task, changed
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()
        ev = changed

        def on_change(operation: str, names: tuple[str, ...]) -> None:
            # May run on the timer thread
            loop.call_soon_threadsafe(ev.set)

        app.state.unsubscribe = trk.subscribe(on_change)
        loop_task = asyncio.create_task(push_loop())

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        unsubscribe = getattr(app.state, "unsubscribe", None)
        if unsubscribe is not None:
            unsubscribe()
        trk.close()
        if loop_task:
            loop_task.cancel()
            try:
                await loop_task
            except asyncio.CancelledError:
                pass

    async def push_loop() -> None:  # pragma: no cover - integration
        assert changed is not None
        while True:
            try:
                await changed.wait()
                changed.clear()
                if not ws_clients:
                    continue
                msg = json.dumps(trk.snapshot().to_dict())
                dead: list[WebSocket] = []
                for w in ws_clients:
                    try:
                        await w.send_text(msg)
                    except Exception:
                        dead.append(w)
                for w in dead:
                    ws_clients.discard(w)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("state push failed")
                await asyncio.sleep(0.5)

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.get("/state")
    async def get_state() -> dict:
        return trk.snapshot().to_dict()

    @app.get("/options")
    async def get_options() -> dict:
        return {
            "meters": [{"value": int(o.meter), "name": o.name} for o in METER_OPTIONS],
            "methods": [{"value": o.method.value, "name": o.name} for o in METHOD_OPTIONS],
        }

    @app.post("/tap")
    async def post_tap() -> dict:
        trk.tap()
        return trk.snapshot().to_dict()

    @app.post("/control")
    async def post_control(cfg: ControlModel) -> dict:
        # Meter first so a method change rescales against the new meter
        if cfg.meter is not None:
            trk.set_meter(cfg.meter)
        if cfg.method is not None:
            trk.set_method(cfg.method)
        return {"status": "ok", "state": trk.snapshot().to_dict()}

    @app.websocket("/ws")
    async def ws_state(ws: WebSocket) -> None:  # pragma: no cover - integration
        await ws.accept()
        ws_clients.add(ws)
        try:
            await ws.send_text(json.dumps(trk.snapshot().to_dict()))
            while True:
                # keep alive; updates are pushed from loop
                await ws.receive_text()
        except WebSocketDisconnect:
            ws_clients.discard(ws)
        except Exception:
            ws_clients.discard(ws)

    return app


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "service.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    uvicorn.run(make_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
