from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Body, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from tasktracker.errors import ErrorKind, TaskError
from tasktracker.observability import (
    configure_uvicorn_logging,
    get_json_logger,
    get_metrics,
    use_request_context,
)
from tasktracker.tasks.operations import TaskBackend

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.INVALID_IDENTIFIER: 422,
    ErrorKind.EMPTY_RESULT: 404,
    ErrorKind.REMOTE: 502,
    ErrorKind.NETWORK: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.UNEXPECTED: 500,
}

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    operations: TaskBackend,
    *,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    app = FastAPI(title="tasktracker")
    # Configure uvicorn logging at app startup to avoid import-time side effects
    configure_uvicorn_logging()
    logger = get_json_logger("tasktracker.gateway")
    metrics = get_metrics()

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        if on_shutdown is not None:
            await on_shutdown()
        logger.info("gateway shutdown", extra={"event": "gateway_shutdown", "service": "gateway"})

    @app.middleware("http")
    async def _request_context(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        with use_request_context(request.headers.get(REQUEST_ID_HEADER)) as rid:
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response

    @app.exception_handler(TaskError)
    async def _task_error(request: Request, exc: TaskError) -> JSONResponse:
        status = STATUS_BY_KIND.get(exc.kind, 500)
        logger.warning(
            "gateway task error",
            extra={
                "event": "gateway_error",
                "service": "gateway",
                "path": request.url.path,
                "status_code": status,
                "error_kind": exc.kind.value,
            },
        )
        metrics.increment("gateway_errors", {"kind": exc.kind.value})
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/tasks")
    async def list_tasks() -> dict[str, Any]:
        tasks = await operations.list_tasks()
        return {"tasks": [t.to_row() for t in tasks]}

    @app.post("/tasks", status_code=201)
    async def create_task(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        task = await operations.create_task(payload)
        logger.info(
            "gateway task created",
            extra={"event": "gateway_create", "service": "gateway", "task_id": task.id},
        )
        return {"task": task.to_row()}

    @app.patch("/tasks/{task_id}")
    async def update_task(task_id: str, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        task = await operations.update_task(task_id, payload)
        return {"task": task.to_row()}

    @app.post("/tasks/{task_id}/complete")
    async def complete_task(task_id: str) -> dict[str, Any]:
        task = await operations.complete_task(task_id)
        return {"task": task.to_row()}

    @app.delete("/tasks/{task_id}", status_code=204)
    async def delete_task(task_id: str) -> Response:
        await operations.delete_task(task_id)
        return Response(status_code=204)

    return app


__all__ = ["create_app", "STATUS_BY_KIND", "REQUEST_ID_HEADER"]
