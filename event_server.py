"""
Webhook endpoints for the transaction tracker.

NetSuite-side glue (or any host) posts its lifecycle events here:

    POST /hooks/before-display   {"record_type", "record_id", "mode", "role_id"}
    POST /hooks/after-write      {"record_type", "record_id", "is_new"}
    GET  /trackers/status-options
    GET  /trackers/{record_type}/{record_id}
    POST /trackers/{record_type}/{record_id}   {"status", "memo"}

Tracker problems come back as {"ok": false, "notices": [...]}, never as a
server error, so the caller's own save/load is not affected.

Run with:  uvicorn event_server:app --port 8000
"""

from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool

from tracker_lifecycle import TrackerController, build_controller
from tracker_models import HostRecord
from tracker_surface import TrackerForm

app = FastAPI()


@lru_cache(maxsize=1)
def get_controller() -> TrackerController:
    return build_controller()


async def _body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        # No / broken JSON body (or not UTF-8), treat as empty
        return {}
    return body if isinstance(body, dict) else {}


# The controller talks to NetSuite with blocking requests calls, so every
# call goes through the threadpool to keep the event loop free.


@app.post("/hooks/before-display")
async def before_display(request: Request, controller: TrackerController = Depends(get_controller)):
    body = await _body(request)

    form = TrackerForm()
    outcome = await run_in_threadpool(
        controller.on_before_display,
        HostRecord(
            record_type=str(body.get("record_type") or ""),
            record_id=str(body.get("record_id") or "") or None,
            mode=str(body.get("mode") or "view"),
        ),
        form,
        role_id=body.get("role_id"),
    )
    result = outcome.to_dict()
    result["form"] = form.to_dict()
    return result


@app.post("/hooks/after-write")
async def after_write(request: Request, controller: TrackerController = Depends(get_controller)):
    body = await _body(request)

    outcome = await run_in_threadpool(
        controller.on_after_write,
        HostRecord(
            record_type=str(body.get("record_type") or ""),
            record_id=str(body.get("record_id") or "") or None,
        ),
        is_newly_created=bool(body.get("is_new")),
    )
    return outcome.to_dict()


@app.get("/trackers/status-options")
async def status_options(controller: TrackerController = Depends(get_controller)):
    options = await run_in_threadpool(controller.status_options)
    return {
        "ok": True,
        "options": [{"code": o.code, "label": o.label} for o in options],
    }


@app.get("/trackers/{record_type}/{record_id}")
async def tracker_state(record_type: str, record_id: str, controller: TrackerController = Depends(get_controller)):
    outcome = await run_in_threadpool(controller.read_state, record_type, record_id)
    return outcome.to_dict()


@app.post("/trackers/{record_type}/{record_id}")
async def update_tracker(
    record_type: str,
    record_id: str,
    request: Request,
    controller: TrackerController = Depends(get_controller),
):
    body = await _body(request)
    outcome = await run_in_threadpool(
        controller.submit_update,
        record_type,
        record_id,
        body.get("status"),
        body.get("memo") or "",
    )
    return outcome.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
