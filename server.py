"""
Head Juggling Web Server — Layer 3 (FastAPI + WebSocket)

Owns the camera and the face detector, runs the frame loop, and streams the
game state to browser clients that draw it on a canvas.
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from camera import Camera, CameraUnavailable
from controller import JuggleController
from detector import HaarFaceDetector, DetectorError
from physics import SCENE_WIDTH, SCENE_HEIGHT, BALL_RADIUS

STATIC_DIR = Path(__file__).parent / "static"

# ── Collaborators ───────────────────────────────────────────────────────────

camera = Camera()
detector = HaarFaceDetector()
ctrl = JuggleController(detector=detector)

latest_frame = None


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    stop = asyncio.Event()
    capture = None
    tasks: list[asyncio.Task] = []
    try:
        await asyncio.to_thread(camera.open)
    except CameraUnavailable as exc:
        # Terminal: the prompt stays on screen, nothing else runs.
        print(f"[CAM] {exc}")
    else:
        capture = asyncio.create_task(capture_loop(stop), name="capture_loop")
        tasks = [
            asyncio.create_task(load_detector(), name="load_detector"),
            asyncio.create_task(game_loop(), name="game_loop"),
        ]
        for task in (capture, *tasks):
            task.add_done_callback(_report_crash)
    yield
    # capture_loop is stopped, not cancelled: its in-flight read must end before release.
    stop.set()
    for task in tasks:
        task.cancel()
    if capture is not None:
        tasks.append(capture)
    await asyncio.gather(*tasks, return_exceptions=True)
    camera.release()


def _report_crash(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        print(f"[GAME] {task.get_name()} stopped: {exc!r}")


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []


# ── Background tasks ────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def load_detector():
    try:
        await asyncio.to_thread(detector.load)
    except DetectorError as exc:
        print(f"[DET] {exc}")
        return
    ctrl.mark_ready()


async def capture_loop(stop: asyncio.Event):
    """Keep latest_frame fresh so the game loop never waits on the camera."""
    global latest_frame
    while not stop.is_set():
        frame = await asyncio.to_thread(camera.read)
        if frame is not None:
            latest_frame = frame
        else:
            await asyncio.sleep(FRAME_DT)


async def game_loop():
    """Main game loop running at ~60 fps."""
    while True:
        now = time.perf_counter()

        # Detection inside tick is awaited; the next frame starts after it.
        await ctrl.tick(latest_frame)

        if clients:
            frame_msg = _build_frame_message()
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)
        else:
            ctrl.pending_events.clear()

        # Sleep to maintain target FPS
        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


def _build_frame_message() -> str:
    """Serialize current state into a JSON frame message."""
    events = list(ctrl.pending_events)
    ctrl.pending_events.clear()

    sounds = []
    for ev in ctrl.physics_events:
        sounds.append({
            "type": ev.get("type", ""),
            "depth": round(float(ev.get("depth", 0.0)), 3),
        })

    frame = {"type": "frame", **ctrl.snapshot(), "events": events, "sounds": sounds}
    return json.dumps(frame, separators=(',', ':'), ensure_ascii=False)


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)

    init_msg = json.dumps({
        "type": "init",
        "scene_width": SCENE_WIDTH,
        "scene_height": SCENE_HEIGHT,
        "ball_radius": BALL_RADIUS,
        "fps": TARGET_FPS,
    })
    await ws.send_text(init_msg)

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue

            if msg.get("cmd", "") == "get_state":
                await ws.send_text(json.dumps({
                    "type": "state_json",
                    "data": ctrl.get_state_json(),
                }))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)


# ── Static files + root route ───────────────────────────────────────────────

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/")
async def root():
    return FileResponse(STATIC_DIR / "index.html")


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
