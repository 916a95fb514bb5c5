"""Error kinds and the handlers that turn them into HTTP responses.

Validation and not-found conditions are raised as ``HTTPException`` right in
the routers. Anything coming out of the database layer is logged here and
collapsed into a generic 500 so driver details never reach the client.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class CostPropagationError(Exception):
    """Raised when derived recipe/variant costs could not be brought in line
    with an ingredient's cost. The propagation transaction is rolled back
    before this is raised, so no partial writes remain."""

    def __init__(self, ingredient_id: int | None, message: str):
        super().__init__(message)
        self.ingredient_id = ingredient_id
        self.message = message


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def _on_db_error(request: Request, exc: SQLAlchemyError):
    logger.error(
        "database error on %s %s", request.method, request.url.path,
        exc_info=exc, extra={"request_id": _request_id(request)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


async def _on_propagation_error(request: Request, exc: CostPropagationError):
    logger.error(
        "cost propagation failed for ingredient %s: %s", exc.ingredient_id, exc.message,
        extra={"request_id": _request_id(request)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Cost recalculation failed", "ingredient_id": exc.ingredient_id},
    )


def install_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SQLAlchemyError, _on_db_error)
    app.add_exception_handler(CostPropagationError, _on_propagation_error)
