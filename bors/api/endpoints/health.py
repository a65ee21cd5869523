from fastapi import APIRouter, Request

router = APIRouter()


@router.get("")
def health_check(request: Request):
    """Report whether the event process is still consuming events."""
    process = getattr(request.app.state, "process", None)
    running = process is not None and process.task is not None and not process.task.done()
    return {"status": "ok", "process": "running" if running else "stopped"}
